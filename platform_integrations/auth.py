# Platform Integrations Authentication
"""
Bearer token authentication for the Platform Integrations API.

Tokens are issued by the main application; this service only validates
them and extracts the user id (``userId`` claim, falling back to ``sub``).
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request

from platform_integrations.config import settings

logger = logging.getLogger(__name__)


def create_access_token(user_id: str, expires_in_hours: int = 24) -> str:
    """Create a signed token for ``user_id`` (used by tooling and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "userId": user_id,
        "iat": now,
        "exp": now + timedelta(hours=expires_in_hours),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")


async def get_current_user_id(request: Request) -> str:
    """
    FastAPI dependency returning the authenticated user's id.

    Raises:
        HTTPException 401 if not authenticated
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Provide Authorization: Bearer <token> header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(auth_header[7:])  # Remove "Bearer " prefix
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        logger.warning("Token without user id rejected")
        raise HTTPException(status_code=401, detail="Invalid token: missing user id")
    return str(user_id)
