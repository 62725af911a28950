import json
from datetime import datetime
from pathlib import Path
from typing import Sequence
import pandas as pd
from .metrics import CheckResult
from .settings import PROJECT_ROOT

RESULTS_DIR = PROJECT_ROOT / "results"

EXPORT_COLUMNS = ["provider", "region", "label", "url", "status", "attempts", "timing", "transferSize", "detail"]


def result_record(r: CheckResult) -> dict:
    """One flat export row; timing rounded to whole ms, unknowns as None."""
    t = r.target
    return {
        "provider": t.provider,
        "region": t.region,
        "label": t.label,
        "url": t.url,
        "status": r.status.value,
        "attempts": r.attempts,
        "timing": round(r.timing_ms) if r.timing_ms else None,
        "transferSize": r.transfer_size or None,
        "detail": r.detail,
    }


def results_to_df(results: Sequence[CheckResult]) -> pd.DataFrame:
    return pd.DataFrame([result_record(r) for r in results], columns=EXPORT_COLUMNS)


def save_df(df: pd.DataFrame, name: str, results_dir: Path = RESULTS_DIR) -> Path | None:
    """
    Persist a DataFrame as CSV under results/<name>.csv.
    """
    if df.empty:
        return None

    results_dir.mkdir(parents=True, exist_ok=True)
    out_path = results_dir / f"{name}.csv"
    df.to_csv(out_path, index=False)
    print(f"[export] Saved {out_path}")
    return out_path


def export_json(results: Sequence[CheckResult], results_dir: Path = RESULTS_DIR, now: datetime | None = None) -> Path:
    """
    Write results as a JSON array to results/dpi-check-<timestamp>.json.
    """
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    results_dir.mkdir(parents=True, exist_ok=True)
    out_path = results_dir / f"dpi-check-{stamp}.json"
    out_path.write_text(
        json.dumps([result_record(r) for r in results], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    print(f"[export] Saved {out_path}")
    return out_path
