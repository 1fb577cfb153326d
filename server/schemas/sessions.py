"""Pydantic schemas for session endpoints."""

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """Request model for opening a session as an owner."""
    owner_id: str = Field(..., min_length=1, max_length=200)


class CreateSessionResponse(BaseModel):
    """Response model for an opened session."""
    session_key: str
    owner_id: str


class RevokeSessionResponse(BaseModel):
    """Response model for a revoked session."""
    revoked: bool
