import hmac
import hashlib
import json
from typing import Optional
from jose import JWTError, jwt


def compute_signature(secret: str, body: bytes) -> str:
    """HMAC-SHA256 hex digest of the raw request body"""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """
    Verify the x-wix-signature header against the raw body.
    Returns True when no secret is configured.
    """
    if not secret:
        return True
    if not signature:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected, signature.strip())


def looks_like_jwt(value: str) -> bool:
    """Compact JWS: three base64url segments, header starts with eyJ"""
    parts = value.split(".")
    return len(parts) == 3 and parts[0].startswith("eyJ")


def decode_jwt(token: str, public_key: Optional[str] = None) -> dict:
    """
    Decode a signed JWT.

    With a public key the RS256 signature is verified; without one the
    claims are read unverified. Raises JWTError on any failure.
    """
    if public_key:
        return jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            options={"verify_aud": False, "verify_exp": False},
        )
    return jwt.get_unverified_claims(token)


def parse_json_claim(value) -> Optional[dict]:
    """JWT claims carry nested JSON as strings; accept either form"""
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


__all__ = [
    "JWTError",
    "compute_signature",
    "verify_signature",
    "looks_like_jwt",
    "decode_jwt",
    "parse_json_claim",
]
