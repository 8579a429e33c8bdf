"""
HMAC verification for requests forwarded by Shopify.

Two canonical forms are supported:

* App Proxy requests carry a ``signature`` parameter computed over the
  remaining parameters sorted by key and concatenated as ``key=value`` with
  no separator.
* OAuth callbacks carry an ``hmac`` parameter computed over the remaining
  parameters sorted by key and joined as ``key=value`` with ``&``.

Both use HMAC-SHA256 rendered as lowercase hex.
"""
import hashlib
import hmac
from typing import Iterable, Mapping, Optional, Sequence, Union

ParamValue = Union[str, Sequence[str]]


def compute_signature(message: str, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``message`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def _render_value(value: ParamValue) -> str:
    # Repeated query keys arrive as lists and are signed comma-joined
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def canonical_message(params: Mapping[str, ParamValue], exclude: Iterable[str], separator: str) -> str:
    """
    Build the string that gets signed.

    Args:
        params: Request parameters
        exclude: Parameter names left out of the signed payload
        separator: String placed between ``key=value`` pairs

    Returns:
        Canonical message with keys in byte-wise ascending order
    """
    excluded = set(exclude)
    keys = sorted((k for k in params if k not in excluded), key=lambda k: k.encode("utf-8"))
    return separator.join(f"{k}={_render_value(params[k])}" for k in keys)


def _matches(expected: Optional[ParamValue], message: str, secret: Optional[str]) -> bool:
    if not secret or not expected:
        return False
    digest = compute_signature(message, secret)
    return hmac.compare_digest(digest.encode("utf-8"), _render_value(expected).encode("utf-8"))


def verify_proxy_signature(params: Mapping[str, ParamValue], secret: Optional[str]) -> bool:
    """
    Verify an App Proxy request.

    Returns False, never raises, when the secret or the signature is missing.
    """
    params = params or {}
    message = canonical_message(params, exclude=("signature",), separator="")
    return _matches(params.get("signature"), message, secret)


def verify_oauth_hmac(params: Mapping[str, ParamValue], secret: Optional[str]) -> bool:
    """Verify the ``hmac`` parameter of an OAuth install callback."""
    params = params or {}
    message = canonical_message(params, exclude=("hmac", "signature"), separator="&")
    return _matches(params.get("hmac"), message, secret)
