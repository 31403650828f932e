"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

ph = PasswordHasher()

# Verified against when the email is unknown so both failure paths cost one argon2 verify
_DUMMY_HASH = ph.hash("session-lifecycle-dummy-password")


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify a plaintext password using argon2 (salted, constant-time compare).

    A missing hash still runs a verify against a dummy hash and returns False.
    """
    try:
        if password_hash is None:
            ph.verify(_DUMMY_HASH, password)
            return False
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def encode_token(claims: Dict[str, Any], secret: str, algorithm: str,
                 issued_at: datetime, lifetime: timedelta) -> str:
    """Sign ``claims`` adding iat/exp computed from ``issued_at``."""
    payload = dict(claims)
    payload["iat"] = int(issued_at.timestamp())
    payload["exp"] = int((issued_at + lifetime).timestamp())
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str, expected_type: str,
                 issuer: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode and validate a JWT. PyJWT raises ExpiredSignatureError on a passed
    exp claim and InvalidTokenError on anything else (bad signature, garbage input).
    expected type must be "access" or "refresh". When issuer is given the iss
    claim must match it (InvalidIssuerError otherwise).
    """
    decoded = jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        issuer=issuer,
        options={"require": ["exp", "iat"] + (["iss"] if issuer else [])},
    )
    if decoded.get("type") != expected_type:
        raise jwt.InvalidTokenError("Wrong token type")
    return decoded
