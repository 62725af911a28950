from collections import Counter
from typing import Iterable
from .metrics import CheckResult, CheckStatus
from .targets import Target

def pending_result(target: Target) -> CheckResult:
    """
    Initial snapshot for a target nobody has claimed yet.
    Entries of a cancelled run that were never claimed keep this value.
    """
    return CheckResult(target=target, status=CheckStatus.PENDING)


def summarize(results: Iterable[CheckResult | None]) -> dict[str, int]:
    """
    Count results per status, e.g. {"clean": 5, "blocked": 2, ...}.
    Missing entries count as pending.
    """
    counts = Counter(
        (r.status if r is not None else CheckStatus.PENDING).value
        for r in results
    )
    return {s.value: counts.get(s.value, 0) for s in CheckStatus}
