"""
Policy module: scores failed attempts and reduces a target's evidence
to a verdict.

The logic is:
- explicit
- configurable
- easily auditable
"""

from dpi_checker.metrics import CheckStatus
from dpi_checker.settings import CheckConfig, DEFAULT_CHECK_CONFIG


def _cfg(config: CheckConfig | None) -> CheckConfig:
    return config or DEFAULT_CHECK_CONFIG


def is_dpi_timing(timing_ms: float, config: CheckConfig | None = None) -> bool:
    # Slower than an immediate refusal, faster than ordinary retry delays
    cfg = _cfg(config)
    return cfg.dpi_min_timing_ms <= timing_ms <= cfg.dpi_max_timing_ms


def is_dpi_transfer(transfer_size: int | None, config: CheckConfig | None = None) -> bool:
    if transfer_size is None:
        return False
    cfg = _cfg(config)
    return cfg.dpi_low_bytes <= transfer_size <= cfg.dpi_high_bytes


def is_dpi_signature(timing_ms: float, transfer_size: int | None, config: CheckConfig | None = None) -> bool:
    """Score a transport failure (never a timeout) as blocking evidence."""
    return is_dpi_timing(timing_ms, config) or is_dpi_transfer(transfer_size, config)


def backoff_delay_ms(attempt: int, config: CheckConfig | None = None) -> int:
    """
    Wait before `attempt`: 0 for the first one, then base * 2^(attempt-2),
    i.e. 1000 ms before attempt 2 and 2000 ms before attempt 3.
    """
    if attempt <= 1:
        return 0
    return _cfg(config).base_delay_ms * 2 ** (attempt - 2)


def classify_failures(
    signature_count: int,
    failure_count: int,
    last_detail: str,
    config: CheckConfig | None = None,
) -> tuple[CheckStatus, str]:
    """
    Verdict once every attempt failed.

    Enough signature failures mean "blocked". Failing every attempt for
    any reason is also "blocked". Anything else is inconclusive; with the
    current rules the retry loop only gets here after exhausting its
    budget, so that last branch is kept for looser rules only.
    """
    cfg = _cfg(config)
    n = cfg.max_retries

    if signature_count >= cfg.dpi_signature_threshold:
        return CheckStatus.BLOCKED, f"DPI block detected ({signature_count}/{n} DPI signatures). {last_detail}"

    if failure_count == n:
        return CheckStatus.BLOCKED, f"endpoint blocked - all {n} attempts failed ({failure_count}/{n}). {last_detail}"

    return CheckStatus.ERROR, f"inconclusive after {n} attempts. {last_detail}"
