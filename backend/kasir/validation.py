"""
Error taxonomy for the sale transaction engine plus request coercion helpers.

- ValidationError: the input is wrong; surfaced to the user verbatim (400).
- ConsistencyError: commit-time failure after validation passed; the whole
  unit of work is rolled back (409, generic message to the user).
- NotFoundError: a referenced record no longer exists (404).
"""
from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """400-level input problem, tied to the offending field when known."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"error": str(self), "field": self.field}


class ConsistencyError(RuntimeError):
    """Commit aborted; no ledger mutation was applied."""

    USER_MESSAGE = "Transaction failed, please try again"


class NotFoundError(LookupError):
    """Referenced record does not exist."""

    def __init__(self, message: str, entity: str | None = None, entity_id: Any = None):
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


def coerce_int(value: Any, field: str, *, required: bool = True, minimum: int | None = None) -> int | None:
    """
    Strict integer coercion for JSON input.

    Rejects booleans, floats with a fractional part, decimals in strings and
    scientific notation.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)

    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal", field=field)
        result = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)", field=field)
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", field=field)
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field)
    else:
        raise ValidationError(f"{field} must be an integer", field=field)

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", field=field)
    return result


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    # fallback: truthiness
    return bool(value)


def optional_str(value: Any) -> str | None:
    """None stays None; everything else becomes a string (not stripped)."""
    if value is None:
        return None
    return str(value)
