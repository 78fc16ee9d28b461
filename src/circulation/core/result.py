"""Result type for operations that can fail."""

from dataclasses import dataclass

from src.circulation.core.errors import ErrorKind, LendingError


@dataclass(frozen=True)
class Ok[T]:
    value: T


@dataclass(frozen=True)
class Err:
    error: LendingError

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message


type Result[T] = Ok[T] | Err


def fail(kind: ErrorKind, message: str) -> Err:
    return Err(LendingError(kind, message))
