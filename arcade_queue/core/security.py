"""
Security Module

Gateway token generation/validation with python-jose.

The chat gateway is the only API client. It signs one short-lived JWT per
forwarded message, naming who sent it and in which group:

- sub: raw platform user id
- platform: platform id
- group_id: raw group id
- name: display name (optional)

SECURITY NOTES:
- Tokens expire (prevent replay of captured requests)
- The token's group must match the X-Tenant-ID header, checked in deps
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from arcade_queue.config import get_settings

settings = get_settings()

REQUIRED_CLAIMS = ("sub", "platform", "group_id")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a gateway JWT.

    Used by the gateway (and tests); the API itself only verifies tokens.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow()
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a gateway JWT.

    Returns the payload if valid and complete, None otherwise. Signature
    and expiration are verified by jose.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
        return None
    return payload


def token_tenant_id(payload: Dict[str, Any]) -> str:
    return f"{payload['platform']}:{payload['group_id']}"
