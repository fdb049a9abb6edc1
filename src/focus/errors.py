"""Exceptions shared by the store, workflows and CLI."""


class FocusError(Exception):
    """Base class for all Focus errors."""

    pass


class ValidationError(FocusError):
    """Raised when input is rejected before touching the store."""

    pass


class StoreError(FocusError):
    """Raised when the entity store fails."""

    pass


class NotFoundError(StoreError):
    """Raised when an identifier does not exist (stale or deleted)."""

    pass
