from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .github.tags import PROVIDER_PREFIX
from .retry import RetryPolicy
from .runtime import get_fetch_delay, get_fetch_max_attempts

OUTPUT_FORMATS = ("nix", "json")

DEFAULT_ORGS = ("terraform-providers", "hashicorp")

DEFAULT_SLUGS = (
    "IBM-Cloud/terraform-provider-ibm",
    "ajbosco/terraform-provider-segment",
    "camptocamp/terraform-provider-pass",
    "carlpett/terraform-provider-sops",
    "poseidon/terraform-provider-matchbox",
    "poseidon/terraform-provider-ct",
    "tweag/terraform-provider-nixos",
    "tweag/terraform-provider-secret",
)

DEFAULT_BLACKLIST = (
    "terraform-providers/terraform-provider-azure-classic",
    "terraform-providers/terraform-provider-scaleway-classic",
    "terraform-providers/terraform-provider-google-beta",
)

_TOP_LEVEL_KEYS = {
    "orgs",
    "slugs",
    "blacklist",
    "prefix",
    "output",
    "format",
    "prefetch_command",
    "fetch",
    "api",
}
_POLICY_KEYS = {"max_attempts", "delay", "backoff"}
_API_KEYS = {*_POLICY_KEYS, "timeout"}


class ConfigError(ValueError):
    pass


def parse_slug(slug: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its two parts."""
    if not isinstance(slug, str):
        raise ConfigError(f"Slug must be a string: {slug!r}")
    owner, sep, repo = slug.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ConfigError(f"Slug must look like 'owner/repo': {slug!r}")
    return owner, repo


@dataclass(frozen=True)
class Config:
    orgs: tuple[str, ...] = DEFAULT_ORGS
    slugs: tuple[str, ...] = DEFAULT_SLUGS
    blacklist: frozenset[str] = frozenset(DEFAULT_BLACKLIST)
    prefix: str = PROVIDER_PREFIX
    output: str = "data.nix"
    format: str = "nix"
    prefetch_command: str = "nix-prefetch-url"
    fetch_policy: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(
            max_attempts=get_fetch_max_attempts(), delay=get_fetch_delay()
        )
    )
    api_policy: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(max_attempts=1, delay=0.0)
    )
    api_timeout: float | None = None

    def with_overrides(self, **changes: Any) -> "Config":
        changes = {k: v for k, v in changes.items() if v is not None}
        if "format" in changes:
            _check_format(changes["format"])
        return replace(self, **changes)


def _check_format(fmt: str) -> str:
    if fmt not in OUTPUT_FORMATS:
        raise ConfigError(
            f"'format' must be one of {', '.join(OUTPUT_FORMATS)}: {fmt!r}"
        )
    return fmt


def _string_list(data: dict[str, Any], key: str) -> tuple[str, ...] | None:
    if key not in data:
        return None
    value = data[key]
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return tuple(v.strip() for v in value)


def _policy(data: Any, key: str, base: RetryPolicy, allowed: set[str]) -> RetryPolicy:
    if data is None:
        return base
    if not isinstance(data, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    extra = set(data) - allowed
    if extra:
        raise ConfigError(f"'{key}' has invalid keys: {', '.join(sorted(extra))}")
    try:
        return replace(
            base,
            **{k: v for k, v in data.items() if k in _POLICY_KEYS},
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid '{key}' settings: {exc}") from exc


def config_from_data(data: dict[str, Any] | None) -> Config:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")
    extra = set(data) - _TOP_LEVEL_KEYS
    if extra:
        raise ConfigError(f"Configuration has invalid keys: {', '.join(sorted(extra))}")

    config = Config()
    changes: dict[str, Any] = {}

    orgs = _string_list(data, "orgs")
    if orgs is not None:
        changes["orgs"] = orgs

    slugs = _string_list(data, "slugs")
    if slugs is not None:
        for slug in slugs:
            parse_slug(slug)
        changes["slugs"] = slugs

    blacklist = _string_list(data, "blacklist")
    if blacklist is not None:
        for slug in blacklist:
            parse_slug(slug)
        changes["blacklist"] = frozenset(blacklist)

    for key in ("prefix", "output", "prefetch_command"):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"'{key}' must be a non-empty string")
            changes[key] = value.strip()

    if "format" in data:
        changes["format"] = _check_format(data["format"])

    changes["fetch_policy"] = _policy(
        data.get("fetch"), "fetch", config.fetch_policy, _POLICY_KEYS
    )
    api = data.get("api")
    changes["api_policy"] = _policy(api, "api", config.api_policy, _API_KEYS)
    if isinstance(api, dict) and api.get("timeout") is not None:
        timeout = api["timeout"]
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError("'api.timeout' must be a positive number")
        changes["api_timeout"] = float(timeout)

    return replace(config, **changes)


def load_config(path: str | Path | None = None) -> Config:
    if path is None:
        return Config()
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    return config_from_data(data)
