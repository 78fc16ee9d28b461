from dataclasses import dataclass, field

from src.circulation.core.services import DbSessionService, KeyedLocks, MonotonicClock
from src.circulation.runtime.config import LendingConfig


@dataclass
class ApplicationDependencies:
    """Process-wide collaborators shared by every request.

    The lock registries and the clock must be shared so that concurrent
    requests serialize on the same copies and ISBNs.
    """

    database_service: DbSessionService
    lending: LendingConfig = field(default_factory=LendingConfig)
    copy_locks: KeyedLocks = field(default_factory=lambda: KeyedLocks("copy"))
    isbn_locks: KeyedLocks = field(default_factory=lambda: KeyedLocks("isbn"))
    clock: MonotonicClock = field(default_factory=MonotonicClock)
