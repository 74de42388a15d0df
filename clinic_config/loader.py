"""
Configuration Loader (``clinic_config.loader``).

Responsibility
--------------
Builds a ``PipelineConfig`` from an optional YAML file and environment
overrides.  Precedence, lowest to highest: dataclass defaults, the YAML
``pipeline:`` mapping, environment variables.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or unparsable value  -> ``ConfigurationError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from clinic_config.schema import PipelineConfig
from clinic_kernel.exceptions import ConfigurationError

# Environment variable -> PipelineConfig field
ENV_OVERRIDES: dict[str, str] = {
    "SCRAPER_CHALLENGE_TIMEOUT_MS": "challenge_timeout_ms",
    "SCRAPER_ROW_RESULT_TIMEOUT_MS": "row_result_timeout_ms",
    "PROCESS_LIMIT": "batch_limit",
    "USE_PROXY": "use_proxy",
    "PROXY_SERVER": "proxy_server",
    "SCRAPER_HEADLESS": "headless",
    "SCRAPER_DIAGNOSTICS_DIR": "diagnostics_dir",
}

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its top-level ``pipeline`` mapping."""
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level YAML value must be a mapping")
    section = data.get("pipeline", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError("pipeline", "must be a mapping")
    return section


def _coerce(name: str, raw: Any, kind: type, optional: bool) -> Any:
    if raw is None:
        if optional:
            return None
        raise ConfigurationError(name, "must not be null")
    if kind is bool:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigurationError(name, f"expected a boolean, got {raw!r}")
    if kind is int:
        if isinstance(raw, bool):
            raise ConfigurationError(name, f"expected an integer, got {raw!r}")
        try:
            return int(str(raw).strip())
        except ValueError:
            raise ConfigurationError(name, f"expected an integer, got {raw!r}") from None
    return str(raw)


def _field_types() -> dict[str, type]:
    # Annotations are strings under ``from __future__ import annotations``.
    kinds: dict[str, type] = {}
    for f in fields(PipelineConfig):
        annotation = str(f.type)
        if annotation.startswith("bool"):
            kinds[f.name] = bool
        elif annotation.startswith("int"):
            kinds[f.name] = int
        else:
            kinds[f.name] = str
    return kinds


def _optional_fields() -> frozenset[str]:
    return frozenset(f.name for f in fields(PipelineConfig) if "None" in str(f.type))


def build_config(values: Mapping[str, Any]) -> PipelineConfig:
    """Validate keys, coerce values, and construct the frozen config."""
    kinds = _field_types()
    unknown = sorted(set(values) - set(kinds))
    if unknown:
        raise ConfigurationError(unknown[0], "unknown configuration key")
    optional = _optional_fields()
    coerced = {
        name: _coerce(name, raw, kinds[name], name in optional)
        for name, raw in values.items()
    }
    return PipelineConfig(**coerced)


def load_pipeline_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> PipelineConfig:
    """
    Load the pipeline configuration.

    Args:
        path: Optional YAML file with a top-level ``pipeline:`` mapping.
        env: Environment mapping; defaults to ``os.environ``.
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}
    if path is not None:
        values.update(load_yaml_file(Path(path)))
    for var, name in ENV_OVERRIDES.items():
        if var in env and env[var] != "":
            values[name] = env[var]
    return build_config(values)
