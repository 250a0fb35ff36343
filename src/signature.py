"""
ElevenLabs webhook signature verification.

ElevenLabs signs webhooks using HMAC-SHA256 over the request body.
The signature header value is: sha256=<hex_digest>
"""

import hashlib
import hmac
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def _to_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(body: Union[str, bytes], secret: str) -> str:
    """Return the expected signature header value for a body."""
    digest = hmac.new(_to_bytes(secret), _to_bytes(body), hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    signature_header: Optional[str],
    body: Union[str, bytes],
    secret: str,
) -> bool:
    """
    Check a signature header against the body and shared secret.

    Returns True only when the header equals "sha256=<hex>" for the body.
    A missing or malformed header returns False.
    """
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        logger.warning("Missing or malformed signature header")
        return False

    try:
        expected = compute_signature(body, secret)
        return hmac.compare_digest(_to_bytes(signature_header), _to_bytes(expected))
    except Exception as e:
        logger.error("Signature verification error: %s", str(e))
        return False
