"""Session token issue and verification using JWT."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from salescrm.core.config import Settings
from salescrm.models.enums import Role
from salescrm.models.schemas import Caller


logger = logging.getLogger(__name__)


def create_session_token(user_id: str, role: Role, settings: Settings) -> str:
    """Create a signed session token carrying the user id and role."""
    expiration = datetime.now(timezone.utc) + timedelta(minutes=settings.session_ttl_minutes)
    payload = {
        "sub": user_id,
        "role": role.value,
        "exp": expiration,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str, settings: Settings) -> Optional[Caller]:
    """
    Verify a session token and return the caller it identifies.

    Returns None for expired, tampered, or malformed tokens. A token whose
    role claim is not a known role still authenticates, with `role=None`,
    and is given no visibility downstream.
    """
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Session token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid session token: {str(e)}")
        return None

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("Session token has no subject")
        return None

    return Caller(id=str(user_id), role=Role.parse(payload.get("role")))
