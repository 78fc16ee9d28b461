"""Input validation and normalization for catalog and borrower fields.

Each validator returns the cleaned value in ``Ok`` or an ``InvalidArgument``
error; none of them raise.
"""

import re

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Ok, Result, fail

TITLE_MAX_LENGTH = 500
AUTHOR_MAX_LENGTH = 200
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 150

_ISBN_PREFIX = re.compile(r"^ISBN(?:-1[03])?:?\s*", re.IGNORECASE)
_ISBN_BODY = re.compile(r"^[0-9Xx][0-9Xx\s-]*$")
_ISBN_10 = re.compile(r"^\d{9}[\dX]$")
_ISBN_13 = re.compile(r"^97[89]\d{10}$")

_NAME = re.compile(r"^[a-zA-Z\s'-]+$")
_EMAIL = re.compile(
    r"^[a-z0-9_+&*-]+(?:\.[a-z0-9_+&*-]+)*@(?:[a-z0-9-]+\.)+[a-z]{2,7}$"
)


def normalize_isbn(raw: str | None) -> Result[str]:
    """Validate an ISBN as typed by a person and reduce it to digits and 'X'.

    Accepts an optional ``ISBN``/``ISBN-10``/``ISBN-13`` prefix, hyphens and
    spaces. The check digit is not verified.
    """
    if raw is None or not raw.strip():
        return fail(ErrorKind.INVALID_ARGUMENT, "ISBN cannot be empty")

    body = _ISBN_PREFIX.sub("", raw.strip())
    if not _ISBN_BODY.match(body):
        return fail(ErrorKind.INVALID_ARGUMENT, f"Invalid ISBN format: {raw!r}")

    normalized = re.sub(r"[^0-9X]", "", body.upper())
    if not (_ISBN_10.match(normalized) or _ISBN_13.match(normalized)):
        return fail(ErrorKind.INVALID_ARGUMENT, f"Invalid ISBN format: {raw!r}")
    return Ok(normalized)


def _bounded_text(raw: str | None, field: str, max_length: int) -> Result[str]:
    if raw is None or not raw.strip():
        return fail(ErrorKind.INVALID_ARGUMENT, f"{field} cannot be empty")
    value = raw.strip()
    if len(value) > max_length:
        return fail(
            ErrorKind.INVALID_ARGUMENT,
            f"{field} cannot exceed {max_length} characters",
        )
    return Ok(value)


def validate_title(raw: str | None) -> Result[str]:
    return _bounded_text(raw, "Title", TITLE_MAX_LENGTH)


def validate_author(raw: str | None) -> Result[str]:
    return _bounded_text(raw, "Author", AUTHOR_MAX_LENGTH)


def validate_name(raw: str | None) -> Result[str]:
    """Trimmed name of 2-100 letters, spaces, hyphens or apostrophes."""
    if raw is None or not raw.strip():
        return fail(ErrorKind.INVALID_ARGUMENT, "Name cannot be empty")
    value = raw.strip()
    if not NAME_MIN_LENGTH <= len(value) <= NAME_MAX_LENGTH:
        return fail(
            ErrorKind.INVALID_ARGUMENT,
            f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters",
        )
    if not _NAME.match(value):
        return fail(
            ErrorKind.INVALID_ARGUMENT,
            "Name can only contain letters, spaces, hyphens, and apostrophes",
        )
    return Ok(value)


def validate_email(raw: str | None) -> Result[str]:
    """Trimmed, lowercased email of the form local@domain.tld."""
    if raw is None or not raw.strip():
        return fail(ErrorKind.INVALID_ARGUMENT, "Email cannot be empty")
    value = raw.strip().lower()
    if len(value) > EMAIL_MAX_LENGTH:
        return fail(
            ErrorKind.INVALID_ARGUMENT,
            f"Email cannot exceed {EMAIL_MAX_LENGTH} characters",
        )
    if not _EMAIL.match(value):
        return fail(ErrorKind.INVALID_ARGUMENT, f"Invalid email format: {raw.strip()!r}")
    return Ok(value)
