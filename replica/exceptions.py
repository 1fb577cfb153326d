"""Exception classes for the replica side."""

from typing import Optional


class ReplicaError(Exception):
    """
    Base exception class for replica errors.
    """
    pass


class TransientNetworkFailure(ReplicaError):
    """
    Raised when a persistence or fetch call fails.

    Recovered locally (rollback or resynchronization), never fatal.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OwnerMismatchError(ReplicaError):
    """
    Raised when an operation names an owner other than the session owner.
    """
    pass


class ChannelUnavailableError(ReplicaError):
    """
    Raised when the realtime channel cannot be connected or subscribed.
    """
    pass


class NotInitializedError(ReplicaError):
    """
    Raised when a replica store is started before it was initialized.
    """
    pass
