class DatabaseError(Exception):
    """Base for all persistence errors."""


class NotFoundError(DatabaseError):
    """No row for the given id (malformed ids included)."""


class DuplicateError(DatabaseError):
    """Email already registered."""


class IntegrityError(DatabaseError):
    """Referenced user or analysis does not exist."""


class InsufficientCreditsError(DatabaseError):
    """Credit balance is zero; nothing was written."""
