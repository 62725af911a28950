from pathlib import Path
from dataclasses import dataclass, fields
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]

@dataclass
class CheckConfig:
    """
    Policy knobs for probing and classification.

    The retry budget, timeout and signature windows together set the
    trade-off between false positives (ordinary congestion scored as
    blocking) and false negatives (short-window cuts that go unnoticed).

    Values can be overridden via check_config.yaml at the project root.
    """

    # Retry loop
    max_retries: int = 3
    base_delay_ms: int = 1000

    # Single attempt
    request_timeout_ms: int = 15_000
    settle_delay_ms: int = 50
    read_limit_bytes: int = 65_536
    user_agent: str = "Mozilla/5.0"

    # Signature windows (inclusive)
    dpi_min_timing_ms: float = 300
    dpi_max_timing_ms: float = 10_000
    dpi_low_bytes: int = 16_000
    dpi_high_bytes: int = 21_000

    # Failures carrying a signature needed for a "blocked" verdict
    dpi_signature_threshold: int = 2

    # Scheduler
    concurrency: int = 6

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.dpi_signature_threshold < 1:
            raise ValueError(f"dpi_signature_threshold must be at least 1, got {self.dpi_signature_threshold}")

def load_check_config(path: str | Path | None = None) -> CheckConfig:
    """
    Load CheckConfig from YAML if present; otherwise use defaults.

    By default, looks for `check_config.yaml` at the project root.
    """

    if path is None:
        path = PROJECT_ROOT / "check_config.yaml"

    path = Path(path)

    if not path.exists():
        print(f"[config] YAML not found at {path}, using defaults")
        return CheckConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        print(f"[config] Expected mapping in {path}, got {type(data)}, using defaults")
        return CheckConfig()

    allowed_keys = {f.name for f in fields(CheckConfig)}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return CheckConfig(**filtered)

DEFAULT_CHECK_CONFIG = load_check_config()
