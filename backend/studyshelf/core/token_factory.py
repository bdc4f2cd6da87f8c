"""Pure functions for creating and decoding HS256 user tokens.

No classes beyond the payload record, no state: just encode/decode. Used by
the auth dependency and by tests or scripts that need a token for a user.
"""

import hashlib
import hmac
import base64
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ISSUER = "studyshelf"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded token payload. Immutable."""
    user_id: int
    exp: datetime


def create_token(
    user_id: int,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Create a signed token whose subject is *user_id*.

    Args:
        user_id: Numeric id of the user the token authenticates.
        secret: HMAC signing key.
        algorithm: Only HS256 supported.
        expires_hours: Hours until expiry.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = time.time()
    payload = {
        "sub": str(int(user_id)),
        "iat": int(now),
        "exp": int(now + expires_hours * 3600),
        "iss": ISSUER,
    }

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Decode and validate a token.

    Returns ``None`` on any validation failure (bad signature, expired,
    malformed, foreign issuer, non-numeric subject) rather than raising.
    """
    if algorithm != "HS256":
        return None
    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        actual_sig = _b64decode(parts[2])

        if not hmac.compare_digest(expected_sig, actual_sig):
            return None

        payload = json.loads(_b64decode(parts[1]))

        exp = payload.get("exp", 0)
        if time.time() > exp:
            return None
        if payload.get("iss") != ISSUER:
            return None

        user_id = int(payload["sub"])
        if user_id < 1:
            return None

        return TokenPayload(
            user_id=user_id,
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (json.JSONDecodeError, KeyError, ValueError, TypeError, IndexError):
        return None


# --- base64url helpers (no padding, URL-safe) ---

def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
