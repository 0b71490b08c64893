class CareNotesError(Exception):
    """Base class for errors raised by the hierarchy and notes stores."""


class ValidationError(CareNotesError):
    """Malformed input, rejected before any storage mutation begins."""


class NotFoundError(CareNotesError):
    """A referenced node or note does not exist."""


class StorageError(CareNotesError):
    """The storage engine failed; the enclosing transaction was rolled back."""
