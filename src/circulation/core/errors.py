"""Error taxonomy for lending operations.

Rule violations are returned to callers inside ``Err`` values; they are never
raised. Only infrastructure failures travel as exceptions.
"""

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_ARGUMENT = "InvalidArgument"
    NOT_FOUND = "NotFound"
    CONFLICTING_METADATA = "ConflictingMetadata"
    DUPLICATE_EMAIL = "DuplicateEmail"
    NOT_AVAILABLE = "NotAvailable"
    NO_AVAILABLE_COPY = "NoAvailableCopy"
    NOT_ON_LOAN = "NotOnLoan"
    COPY_ON_LOAN = "CopyOnLoan"
    HAS_ACTIVE_LOANS = "HasActiveLoans"

    @property
    def is_business_rule(self) -> bool:
        """False for caller mistakes (bad input, unknown id), True for rule violations."""
        return self not in (ErrorKind.INVALID_ARGUMENT, ErrorKind.NOT_FOUND)


@dataclass(frozen=True)
class LendingError:
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"
