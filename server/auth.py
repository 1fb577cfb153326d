"""Session key helpers and the FastAPI dependency resolving the owner."""

import uuid
from typing import Optional

from fastapi import Header

from server.config import SESSION_PREFIX
from server.exceptions import InvalidSessionError
from server.repositories.session_repository import SessionRepository


def generate_session_key() -> str:
    """
    Generate a new session key with the configured prefix.

    Returns:
        Session key string in format: {prefix}{uuid4}
    """
    return f"{SESSION_PREFIX}{uuid.uuid4()}"


def parse_bearer(authorization: Optional[str]) -> str:
    """
    Extract the session key from an Authorization header value.

    Raises:
        InvalidSessionError: If the header is missing or not a Bearer token
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidSessionError("Invalid authorization header format")

    session_key = authorization[len("Bearer "):].strip()
    if not session_key.startswith(SESSION_PREFIX):
        raise InvalidSessionError("Invalid session key format")
    return session_key


def resolve_owner(authorization: Optional[str]) -> str:
    """
    Resolve the owner identity behind an Authorization header.

    Raises:
        InvalidSessionError: If the session key is unknown
    """
    session_key = parse_bearer(authorization)
    owner_id = SessionRepository.get_owner(session_key)
    if owner_id is None:
        raise InvalidSessionError("Invalid or expired session key")
    return owner_id


async def get_current_owner(authorization: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency returning the owner_id of the authenticated session.

    Raises:
        InvalidSessionError: Mapped to 401 by the application
    """
    return resolve_owner(authorization)


async def get_session_key(authorization: Optional[str] = Header(None)) -> str:
    """FastAPI dependency returning the bearer session key, unresolved."""
    return parse_bearer(authorization)
