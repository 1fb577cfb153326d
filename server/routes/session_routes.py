"""Session API routes."""

from fastapi import APIRouter, Depends, status

from server.auth import get_session_key
from server.schemas.sessions import CreateSessionRequest, CreateSessionResponse, RevokeSessionResponse
from server.services.session_service import SessionService

router = APIRouter(prefix="/auth", tags=["Sessions"])


@router.post("/session", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(request: CreateSessionRequest):
    """
    Open a session for an owner identity.

    Parameters:
        - owner_id: Opaque owner identity established upstream

    Returns:
        - session_key: Key to send as 'Authorization: Bearer <session_key>'
        - owner_id: Echo of the owner identity
    """
    session_service = SessionService()
    session_key = session_service.open_session(request.owner_id)

    return CreateSessionResponse(session_key=session_key, owner_id=request.owner_id)


@router.delete("/session", response_model=RevokeSessionResponse)
async def revoke_session(session_key: str = Depends(get_session_key)):
    """
    Revoke the calling session. Revoking an unknown key returns revoked=false.

    Raises:
        - 401: Missing or malformed Authorization header
    """
    session_service = SessionService()
    revoked = session_service.close_session(session_key)

    return RevokeSessionResponse(revoked=revoked)
