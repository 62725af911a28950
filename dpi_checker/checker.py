import asyncio
from dataclasses import replace
from typing import Awaitable, Callable, Protocol
from .metrics import AttemptOutcome, CheckResult, CheckStatus
from .policy import backoff_delay_ms, classify_failures
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG
from .targets import Target


class Prober(Protocol):
    async def probe(self, url: str, attempt: int) -> AttemptOutcome: ...


ProgressCallback = Callable[[CheckResult], None]


async def check_target(
    target: Target,
    prober: Prober,
    config: CheckConfig | None = None,
    on_progress: ProgressCallback | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    cancel: asyncio.Event | None = None,
) -> CheckResult:
    """
    Run the retry loop for one target and return its verdict.

    Publishes a "checking" snapshot before the first attempt and after
    every failed one. The first successful attempt ends the loop with
    "clean"; once every attempt has failed the collected evidence is
    reduced by `classify_failures`.

    If `cancel` is set before a retry, no further attempt is started and
    the latest "checking" snapshot is returned instead of a verdict.
    """
    cfg = config or DEFAULT_CHECK_CONFIG
    n = cfg.max_retries

    result = CheckResult(target=target, status=CheckStatus.CHECKING)
    if on_progress:
        on_progress(result)

    signature_count = 0
    failure_count = 0
    last_detail = ""

    for attempt in range(1, n + 1):
        if attempt > 1:
            if cancel is not None and cancel.is_set():
                return replace(result, detail=f"cancelled after attempt {attempt - 1}/{n}")
            await sleep(backoff_delay_ms(attempt, cfg) / 1000)

        outcome = await prober.probe(target.url, attempt)

        if outcome.success:
            return replace(
                result,
                status=CheckStatus.CLEAN,
                attempts=attempt,
                timing_ms=outcome.timing_ms,
                transfer_size=outcome.transfer_size,
                detail=f"{outcome.detail} (attempt {attempt}/{n})",
            )

        failure_count += 1
        if outcome.is_dpi_signature:
            signature_count += 1
        last_detail = outcome.detail

        result = replace(
            result,
            attempts=attempt,
            timing_ms=outcome.timing_ms,
            transfer_size=outcome.transfer_size,
            detail=f"attempt {attempt}/{n}: {outcome.detail}",
        )
        if on_progress:
            on_progress(result)

    status, detail = classify_failures(signature_count, failure_count, last_detail, cfg)
    return replace(result, status=status, detail=detail)
