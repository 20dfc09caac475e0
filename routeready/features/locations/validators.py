"""
Location input validators.

One validator with two modes:
- strict: value must look like a US ZIP (12345 / 12345-6789) or a Canadian
  postal code (A1A 1A1)
- lenient: any short free-text place name is accepted
"""

import re
from typing import Optional

from routeready.core.errors import InputFormatError

MAX_INPUT_LENGTH = 1000
MAX_SHORT_INPUT_LENGTH = 100

US_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
CA_POSTAL_RE = re.compile(r"^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$")
_ANGLE_BRACKETS_RE = re.compile(r"[<>]")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_input(value: str, max_length: int = MAX_INPUT_LENGTH) -> str:
    """Trim, drop angle brackets and control characters, cap length."""
    cleaned = _CONTROL_CHARS_RE.sub("", value.strip())
    cleaned = _ANGLE_BRACKETS_RE.sub("", cleaned)
    return cleaned[:max_length]


def is_zip_or_postal_code(value: str) -> bool:
    return bool(US_ZIP_RE.match(value) or CA_POSTAL_RE.match(value))


def validate_location(value: Optional[str], *, field: str = "location", strict: bool = True) -> str:
    """
    Validate and normalize a departure/destination value.

    Returns:
        The sanitized location string

    Raises:
        InputFormatError: Empty, too long, or (strict mode) not a ZIP/postal code
    """
    if value is None or not isinstance(value, str) or not value.strip():
        raise InputFormatError(f"{field} is required", field=field)

    if len(value.strip()) > MAX_SHORT_INPUT_LENGTH:
        raise InputFormatError(
            f"{field} is too long: maximum {MAX_SHORT_INPUT_LENGTH} characters allowed",
            field=field,
        )

    cleaned = sanitize_input(value, MAX_SHORT_INPUT_LENGTH)
    if not cleaned:
        raise InputFormatError(f"{field} is required", field=field)

    if strict and not is_zip_or_postal_code(cleaned):
        raise InputFormatError(
            f"{field} must be a US ZIP code (12345 or 12345-6789) or Canadian postal code (A1A 1A1)",
            field=field,
        )

    if CA_POSTAL_RE.match(cleaned):
        # Canonical form: upper case, single space
        compact = re.sub(r"[ -]", "", cleaned).upper()
        return f"{compact[:3]} {compact[3:]}"

    return cleaned
