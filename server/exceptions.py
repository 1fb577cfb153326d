"""Custom exception classes for the bookmark server."""


class MarkdException(Exception):
    """
    Base exception class for all server errors.
    """
    pass


class InvalidSessionError(MarkdException):
    """
    Raised when a session key is missing, malformed or unknown.
    """
    pass


class OwnerMismatchError(MarkdException):
    """
    Raised when a request names an owner other than the session owner.
    """
    pass


class DuplicateBookmarkError(MarkdException):
    """
    Raised when inserting a bookmark whose id already exists.
    """
    pass


class InvalidBookmarkError(MarkdException):
    """
    Raised when bookmark fields fail validation.
    """
    pass
