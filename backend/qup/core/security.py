"""
Qup Backend - Password Hashing and Tokens
===========================================

What:  Password hashing (passlib) and JWT access/refresh tokens (PyJWT).
How:   Tokens are HS256-signed with settings.jwt_secret and carry the claims
       sub, email, role, type, ver, iat and exp.
Who:   AuthService issues tokens; qup.dependencies and the GraphQL context
       decode them on every request.

Revocation:
    `ver` mirrors users.token_version at issue time. Logout increments the
    column, so every outstanding token for that user stops matching.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from qup.config import settings
from qup.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def _create_token(user, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    role = user.role.value if hasattr(user.role, "value") else user.role
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "role": role,
        "type": token_type,
        "ver": user.token_version or 0,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user) -> str:
    return _create_token(
        user, ACCESS_TOKEN, timedelta(minutes=settings.access_token_expire_minutes)
    )


def create_refresh_token(user) -> str:
    return _create_token(
        user, REFRESH_TOKEN, timedelta(minutes=settings.refresh_token_expire_minutes)
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Dict[str, Any]:
    """
    Verifies signature, expiry and token type; returns the claims.

    Raises:
        AuthenticationError: expired, malformed, or a token of the other type
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "type"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected token: %s", e)
        raise AuthenticationError("Invalid token")

    if claims.get("type") != expected_type:
        raise AuthenticationError("Invalid token type")
    return claims
