from __future__ import annotations

"""Input guards and the errors pipelines surface to their callers."""


class InvalidInputError(ValueError):
    """Raised when a required field is missing or blank."""
    pass


class DocumentNotFoundError(LookupError):
    """Raised when a referenced document does not exist."""
    pass


class PersistenceError(RuntimeError):
    """Raised when a datastore read or write fails."""
    pass


def require_text(value: object, field: str) -> str:
    """Return ``value`` when it is a non-blank string, else raise InvalidInputError."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")
    return value
