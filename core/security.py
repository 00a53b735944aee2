"""
Security utilities for the identity provider.

Password hashing (bcrypt), JWT access tokens tied to an auth session, and
PII masking for log payloads.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional, TypedDict

import bcrypt
import jwt

from core.utils.datetime import now

logger = logging.getLogger("security")

# Bcrypt cost factor
BCRYPT_ROUNDS = 12


class JWTPayload(TypedDict, total=False):
    """Claims carried by an access token."""

    sub: str
    email: str
    session_id: str
    type: str
    iat: int
    exp: int
    jti: str


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Returns:
        The hash as a string for database storage
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed hash
        logger.warning("Password verification against malformed hash")
        return False


def create_access_token(
    user_id: str,
    email: str,
    session_id: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        user_id: Identity id (sub claim)
        email: Identity email
        session_id: Auth session the token belongs to
        secret_key: HMAC signing key
        algorithm: JWT algorithm
        expires_delta: Lifetime (default 8 hours)
        issued_at: Issue time (default now)

    Returns:
        Encoded JWT
    """
    issued = issued_at or now()
    expires = issued + (expires_delta or timedelta(hours=8))
    payload: JWTPayload = {
        "sub": user_id,
        "email": email,
        "session_id": session_id,
        "type": "access",
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def verify_jwt_token(token: str, secret_key: str, algorithm: str = "HS256") -> JWTPayload:
    """
    Decode and verify an access token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed, badly signed or of the wrong type
    """
    payload = jwt.decode(
        token,
        secret_key,
        algorithms=[algorithm],
        options={"require": ["sub", "exp", "session_id"]},
    )
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Not an access token")
    return payload


# PII fields that should be masked in logs
PII_FIELDS: set[str] = {
    "email", "name", "full_name", "device_id",
    "location_lat", "location_lng", "latitude", "longitude",
    "face_encoding", "face_photo_url",
}


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if str(key).lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    # Partial masking: show first char and length indicator
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data]
    else:
        return data
