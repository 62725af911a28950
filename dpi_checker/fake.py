import asyncio
from collections import deque
from .metrics import AttemptOutcome


def timeout_outcome(timing_ms: float = 15_000) -> AttemptOutcome:
    return AttemptOutcome(
        success=False, timing_ms=timing_ms, transfer_size=None,
        is_dpi_signature=False, detail=f"timeout after {timing_ms:.0f}ms", timed_out=True,
    )


def reset_outcome(timing_ms: float = 2000, transfer_size: int | None = None, signature: bool = True) -> AttemptOutcome:
    detail = (f"connection reset at {timing_ms:.0f}ms - DPI signature" if signature
              else f"network error: Connection reset by peer at {timing_ms:.0f}ms")
    return AttemptOutcome(
        success=False, timing_ms=timing_ms, transfer_size=transfer_size,
        is_dpi_signature=signature, detail=detail,
    )


def success_outcome(timing_ms: float = 120, transfer_size: int | None = 512) -> AttemptOutcome:
    return AttemptOutcome(
        success=True, timing_ms=timing_ms, transfer_size=transfer_size,
        is_dpi_signature=False, detail=f"status 200 in {timing_ms:.0f}ms",
    )


class FakeProber:
    """
    script: dict[url] -> sequence of AttemptOutcome to return on each call.
    If no scripted outcome is left, returns a timeout outcome.

    `calls` records (url, attempt) in call order; `in_flight` and
    `max_in_flight` track concurrent probes, `delay` (seconds) keeps each
    probe suspended for a while so overlap is observable.
    """
    name = "fake"

    def __init__(self, script=None, delay: float = 0.0):
        self.script = {}
        if script:
            for k, v in script.items():
                self.script[k] = deque(v)
        self.delay = delay
        self.calls: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def probe(self, url: str, attempt: int) -> AttemptOutcome:
        self.calls.append((url, attempt))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        dq = self.script.get(url)
        if dq:
            return dq.popleft()
        return timeout_outcome()
