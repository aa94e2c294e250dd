import hashlib
import hmac
from typing import Optional


def verify_subscription(mode: Optional[str], token: Optional[str], verify_token: str) -> bool:
    """Facebook's GET handshake: mode must be "subscribe" and the token must match."""
    if not verify_token or mode != "subscribe" or token is None:
        return False
    return hmac.compare_digest(token.encode("utf-8"), verify_token.encode("utf-8"))


def verify_signature(app_secret: str, raw_body: bytes, signature_header: Optional[str]) -> bool:
    """Check the X-Hub-Signature-256 header against an HMAC-SHA256 of the body."""
    if not app_secret or not signature_header:
        return False
    if not signature_header.startswith("sha256="):
        return False

    sent_sig = signature_header.split("=", 1)[1]
    calc_sig = hmac.new(app_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(sent_sig, calc_sig)
