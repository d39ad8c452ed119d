"""Domain errors raised by the logistics helpers.

Resources translate them to HTTP responses: ``LookupError`` subclasses become
404, ``ValueError`` subclasses become 400.
"""


class ValidationError(ValueError):
    """Input that can never be quoted or stored (bad cargo, empty item list)."""


class PreconditionError(ValueError):
    """The request exists but is in the wrong state for the operation."""


class NotFoundError(LookupError):
    """A referenced service, request or line item does not exist."""


class PermissionDenied(Exception):
    """The caller may not touch this particular request."""


def error_status(exc):
    if isinstance(exc, LookupError):
        return 404
    if isinstance(exc, PermissionDenied):
        return 403
    return 400


def clean_text(value, field):
    """Stripped text of an optional JSON field; ``""`` when it is missing."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip()
