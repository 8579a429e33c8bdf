"""Concrete adapter implementations, one subpackage per external platform."""
