from dataclasses import dataclass
from enum import Enum
from .targets import Target


class CheckStatus(str, Enum):
    PENDING = "pending"
    CHECKING = "checking"
    CLEAN = "clean"
    BLOCKED = "blocked"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (CheckStatus.CLEAN, CheckStatus.BLOCKED, CheckStatus.ERROR)


@dataclass(frozen=True)
class AttemptOutcome:
    """
    Evidence from a single probe attempt. Internal to the checker.

    Fields:
        success        : The request completed, whatever the HTTP status.
        timing_ms      : Elapsed time of the attempt (milliseconds).
        transfer_size  : Body bytes observed for the attempt, or None when
                         nothing could be observed.
        is_dpi_signature : Failure timing or byte count fell in a
                         signature window. Always False on success/timeout.
        detail         : Human-readable description.
        timed_out      : The attempt hit the hard timeout.
    """
    success: bool
    timing_ms: float
    transfer_size: int | None
    is_dpi_signature: bool
    detail: str
    timed_out: bool = False


@dataclass(frozen=True)
class CheckResult:
    """
    Published snapshot for one target.

    Fields:
        target        : The probed endpoint.
        status        : pending / checking / clean / blocked / error.
        attempts      : Attempts made so far (0 before the first one).
        timing_ms     : Timing of the latest attempt.
        transfer_size : Transfer size of the latest attempt, if known.
        detail        : Human-readable description of the latest state.
    """
    target: Target
    status: CheckStatus
    attempts: int = 0
    timing_ms: float = 0.0
    transfer_size: int | None = None
    detail: str = ""
