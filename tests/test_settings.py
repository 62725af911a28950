from pathlib import Path
import pytest
from dpi_checker.settings import CheckConfig, load_check_config


def test_defaults_match_documented_policy():
    cfg = CheckConfig()
    assert cfg.max_retries == 3
    assert cfg.base_delay_ms == 1000
    assert cfg.request_timeout_ms == 15_000
    assert (cfg.dpi_min_timing_ms, cfg.dpi_max_timing_ms) == (300, 10_000)
    assert (cfg.dpi_low_bytes, cfg.dpi_high_bytes) == (16_000, 21_000)
    assert cfg.dpi_signature_threshold == 2


def test_load_check_config_overrides_and_ignores_unknown_keys(tmp_path: Path):
    path = tmp_path / "check_config.yaml"
    path.write_text("max_retries: 5\nrequest_timeout_ms: 8000\nbogus: 1\n", encoding="utf-8")

    cfg = load_check_config(path)

    assert cfg.max_retries == 5
    assert cfg.request_timeout_ms == 8000
    assert cfg.base_delay_ms == 1000
    assert not hasattr(cfg, "bogus")


def test_load_check_config_falls_back_to_defaults(tmp_path: Path):
    assert load_check_config(tmp_path / "missing.yaml") == CheckConfig()

    not_a_mapping = tmp_path / "list.yaml"
    not_a_mapping.write_text("- 1\n- 2\n", encoding="utf-8")
    assert load_check_config(not_a_mapping) == CheckConfig()


def test_retry_budget_and_threshold_must_be_positive():
    with pytest.raises(ValueError, match="max_retries"):
        CheckConfig(max_retries=0)
    with pytest.raises(ValueError, match="dpi_signature_threshold"):
        CheckConfig(dpi_signature_threshold=0)


def test_load_check_config_rejects_zero_retries(tmp_path: Path):
    path = tmp_path / "check_config.yaml"
    path.write_text("max_retries: 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_check_config(path)
