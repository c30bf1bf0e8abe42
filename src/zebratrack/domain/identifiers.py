"""Local identifiers: 8 hex characters, never purely numeric."""

import secrets

from ..exceptions import ValidationError

UUID_LENGTH = 8


def generate_uuid() -> str:
    """Generate a new local identifier.

    Purely numeric values are rejected so they never collide with Zebra ids.
    """
    while True:
        value = secrets.token_hex(UUID_LENGTH // 2)
        if not value.isdigit():
            return value


def is_valid_uuid(value: object) -> bool:
    """Check whether a value is a well-formed local identifier."""
    if not isinstance(value, str) or len(value) != UUID_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return not value.isdigit()


def validate_uuid(value: object) -> str:
    """Return the identifier lower-cased, or raise ValidationError."""
    if not is_valid_uuid(value):
        raise ValidationError(
            f"Invalid local id {value!r}: expected {UUID_LENGTH} hex characters, not all digits"
        )
    return str(value).lower()
