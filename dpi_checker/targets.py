"""
Endpoint catalog helpers.

The engine only consumes an ordered list of `Target` values. Everything
here runs at the collaborator boundary: URLs are validated once, when a
target is built, and never again inside the prober.
"""

from pathlib import Path
from typing import Callable, Iterable, Literal, get_args
from urllib.parse import urlparse
from pydantic import BaseModel, ConfigDict, field_validator
import yaml

ProviderName = Literal[
    "AWS",
    "Google Cloud",
    "Azure",
    "Cloudflare",
    "DigitalOcean",
    "Hetzner",
    "Vultr",
    "Linode",
    "OVHcloud",
    "Oracle",
    "Scaleway",
    "Custom",
]

PROVIDER_NAMES: tuple[str, ...] = tuple(p for p in get_args(ProviderName) if p != "Custom")


def is_valid_https_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme == "https" and bool(parsed.hostname)


class Target(BaseModel):
    """
    One endpoint to probe. Immutable; identity for bookkeeping is the
    position in the list handed to the scheduler, not the URL.
    """
    model_config = ConfigDict(frozen=True)

    provider: ProviderName
    region: str
    label: str
    url: str

    @field_validator("url")
    @classmethod
    def _https_only(cls, v: str) -> str:
        if not is_valid_https_url(v):
            raise ValueError(f"not an absolute https:// URL: {v!r}")
        return v


def build_targets(
    provider: ProviderName,
    regions: Iterable[dict],
    url_template: Callable[[str], str],
) -> list[Target]:
    """Expand a provider's region list into targets, one URL per region."""
    return [
        Target(provider=provider, region=r["region"], label=r["label"], url=url_template(r["region"]))
        for r in regions
    ]


def custom_target(
    url: str,
    provider: ProviderName = "Custom",
    region: str | None = None,
    label: str | None = None,
) -> Target:
    return Target(provider=provider or "Custom", region=region or "custom", label=label or url, url=url)


def load_targets(path: str | Path) -> list[Target]:
    """
    Load targets from a YAML file holding a list of mappings with
    provider / region / label / url keys.

    Missing region or label fall back to the custom-target defaults.
    Raises ValueError when an entry is not a mapping and
    pydantic.ValidationError when its fields are invalid.
    """
    path = Path(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or []

    if not isinstance(data, list):
        raise ValueError(f"Expected a list of targets in {path}, got {type(data).__name__}")

    targets = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(f"Expected a mapping for each target in {path}, got {item!r}")
        targets.append(custom_target(
            url=item.get("url", ""),
            provider=item.get("provider", "Custom"),
            region=item.get("region"),
            label=item.get("label"),
        ))
    return targets
