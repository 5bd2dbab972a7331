"""
Security utilities for the CRM API.
Staff authenticate with bearer JWTs issued by the identity provider.
"""
from datetime import datetime, timedelta
from typing import Optional, Literal
import uuid

import jwt

from crm_backend.config import settings


# Token types
TokenType = Literal["access"]


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create an access token.

    Args:
        data: Payload data (should include staff_id)
        expires_delta: Custom expiration time

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": "access",
        "jti": str(uuid.uuid4())
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def verify_token(token: str, token_type: TokenType = "access") -> Optional[dict]:
    """Decoded payload if the token is valid and of the given type, None otherwise."""
    payload = decode_token(token)
    if payload and payload.get("type") == token_type:
        return payload
    return None
