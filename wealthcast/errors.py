"""
Engine exceptions.

Degenerate inputs (no income, no spend, empty windows) never raise; they are
answered with documented sentinel values. Only invalid parameters, which are
caller errors, surface as exceptions.
"""

from pydantic import ValidationError


class WealthcastError(Exception):
    """Base exception for forecasting engine errors."""


class InvalidParameterError(WealthcastError, ValueError):
    """Raised when a caller passes parameters the engine cannot work with."""


def from_validation_error(error: ValidationError) -> InvalidParameterError:
    """Flatten a pydantic ValidationError into an InvalidParameterError."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}"
        for err in error.errors()
    )
    return InvalidParameterError(details)
