"""Configuration, exceptions and logging shared by the whole service."""
