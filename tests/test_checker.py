import asyncio
import dataclasses
import pytest
from dpi_checker.checker import check_target
from dpi_checker.fake import FakeProber, reset_outcome, success_outcome, timeout_outcome
from dpi_checker.metrics import CheckStatus
from dpi_checker.settings import CheckConfig
from dpi_checker.targets import custom_target

CFG = CheckConfig()
TARGET = custom_target("https://ams3.digitaloceanspaces.com/", provider="DigitalOcean", region="ams3")


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def run_check(script, config=CFG, on_progress=None, cancel=None):
    prober = FakeProber(script={TARGET.url: script})
    sleep = RecordingSleep()
    result = asyncio.run(check_target(TARGET, prober, config, on_progress=on_progress, sleep=sleep, cancel=cancel))
    return result, prober, sleep


def test_first_success_short_circuits():
    result, prober, sleep = run_check([success_outcome(timing_ms=95)])

    assert result.status == CheckStatus.CLEAN
    assert result.attempts == 1
    assert result.timing_ms == 95
    assert result.detail == "status 200 in 95ms (attempt 1/3)"
    assert len(prober.calls) == 1
    assert sleep.delays == []


def test_all_timeouts_block_by_catch_all():
    result, prober, sleep = run_check([timeout_outcome()] * 3)

    assert result.status == CheckStatus.BLOCKED
    assert result.attempts == 3
    assert "3/3" in result.detail
    assert sleep.delays == [1.0, 2.0]
    assert [a for _, a in prober.calls] == [1, 2, 3]


def test_success_after_two_signature_failures_is_clean():
    result, _, _ = run_check([
        reset_outcome(timing_ms=2000),
        reset_outcome(timing_ms=2500),
        success_outcome(timing_ms=300, transfer_size=None),
    ])

    assert result.status == CheckStatus.CLEAN
    assert result.attempts == 3
    assert result.transfer_size is None


def test_two_signatures_out_of_three_block():
    result, _, _ = run_check([
        reset_outcome(timing_ms=1800, transfer_size=17_000),
        timeout_outcome(),
        reset_outcome(timing_ms=2100),
    ])

    assert result.status == CheckStatus.BLOCKED
    assert result.detail.startswith("DPI block detected (2/3 DPI signatures)")
    assert result.timing_ms == 2100


def test_progress_snapshots_precede_verdict():
    seen = []
    result, _, _ = run_check(
        [reset_outcome(timing_ms=2000, transfer_size=16_500), timeout_outcome(), timeout_outcome()],
        on_progress=seen.append,
    )

    assert [s.status for s in seen] == [CheckStatus.CHECKING] * 4
    assert [s.attempts for s in seen] == [0, 1, 2, 3]
    assert seen[1].detail.startswith("attempt 1/3: connection reset")
    assert seen[1].transfer_size == 16_500
    assert seen[2].transfer_size is None
    assert result not in seen
    assert result.status.is_terminal


def test_snapshots_are_immutable():
    seen = []
    run_check([success_outcome()], on_progress=seen.append)
    with pytest.raises(dataclasses.FrozenInstanceError):
        seen[0].status = CheckStatus.CLEAN


def test_cancel_stops_before_next_attempt():
    cancel = asyncio.Event()

    def on_progress(snapshot):
        if snapshot.attempts == 1:
            cancel.set()

    result, prober, sleep = run_check([timeout_outcome()] * 3, on_progress=on_progress, cancel=cancel)

    assert result.status == CheckStatus.CHECKING
    assert result.attempts == 1
    assert result.detail == "cancelled after attempt 1/3"
    assert len(prober.calls) == 1
    assert sleep.delays == []


def test_retry_budget_follows_config():
    cfg = CheckConfig(max_retries=2, base_delay_ms=10)
    result, prober, sleep = run_check([timeout_outcome()] * 3, config=cfg)

    assert result.status == CheckStatus.BLOCKED
    assert result.attempts == 2
    assert "2/2" in result.detail
    assert sleep.delays == [0.01]
    assert len(prober.calls) == 2
