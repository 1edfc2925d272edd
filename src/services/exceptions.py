"""
Service-level exceptions.

This module contains the exceptions raised by the cycle tracking engine.
Handlers translate each of them into a response status; nothing here is
retried.
"""

class CycleTrackerError(Exception):
    """Base exception for cycle tracking errors."""
    pass

class ValidationError(CycleTrackerError):
    """Raised when required fields are missing or contradictory."""
    pass

class AuthorizationError(CycleTrackerError):
    """Raised when a user is not authorized to act on another user's data."""
    pass

class NotFoundError(CycleTrackerError):
    """Raised when a cycle, reading or user does not exist."""
    pass

class StorageError(CycleTrackerError):
    """Raised when the underlying persistence layer fails."""
    pass

class TransitionConflictError(StorageError):
    """Raised when another request changed the open cycle during a transition."""
    pass
