"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from esg_pipeline.common.constants import GEOCODE_MIN_INTERVAL_SECONDS
from esg_pipeline.common.errors import ConfigError
from esg_pipeline.common.fs import read_yaml
from esg_pipeline.common.http import TimeoutConfig
from esg_pipeline.common.schema import validate_pipeline_config
from esg_pipeline.geocode.canonical import CanonicalRules
from esg_pipeline.metrics.aggregate import MetricSettings
from esg_pipeline.offices.build import OfficeSettings

CONFIG_FILENAME = "pipeline.yml"


@dataclass(frozen=True)
class GeocodeSettings:
    enabled: bool
    endpoint: str
    cache_path: Path
    min_interval_seconds: float = GEOCODE_MIN_INTERVAL_SECONDS
    timeout: TimeoutConfig = TimeoutConfig(connect=5.0, read=10.0)
    max_attempts: int = 1
    rules: CanonicalRules = CanonicalRules()


@dataclass(frozen=True)
class PipelineConfig:
    metrics_source: str
    offices_source: str
    metrics: MetricSettings
    offices: OfficeSettings
    geocoding: GeocodeSettings
    output: dict[str, str]


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> Any:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def _metric_settings(cfg: dict) -> MetricSettings:
    defaults = MetricSettings()
    return MetricSettings(
        columns={**defaults.columns, **cfg["columns"]},
        global_region=cfg.get("global_region", defaults.global_region),
        missing_id_sentinel=cfg.get("missing_id_sentinel", defaults.missing_id_sentinel),
        target_row_types=tuple(cfg.get("target_row_types", defaults.target_row_types)),
        baseline_year=cfg.get("baseline_year", defaults.baseline_year),
        reference_year=cfg.get("reference_year", defaults.reference_year),
        target_year=cfg.get("target_year", defaults.target_year),
    )


def _office_settings(cfg: dict) -> OfficeSettings:
    defaults = OfficeSettings()
    return OfficeSettings(
        columns={**defaults.columns, **cfg["columns"]},
        default_region=cfg.get("default_region", defaults.default_region),
        id_prefix=cfg.get("id_prefix", defaults.id_prefix),
    )


def _geocode_settings(cfg: dict) -> GeocodeSettings:
    canonical = cfg.get("canonical") or {}
    default_rules = CanonicalRules()
    rules = CanonicalRules(
        prefix=canonical.get("prefix", default_rules.prefix),
        fragments=tuple(str(fragment) for fragment in canonical.get("fragments", default_rules.fragments)),
        greedy_fragments=tuple(
            str(fragment) for fragment in canonical.get("greedy_fragments", default_rules.greedy_fragments)
        ),
    )
    timeouts = cfg.get("timeout_seconds") or {}
    return GeocodeSettings(
        enabled=bool(cfg["enabled"]),
        endpoint=cfg["endpoint"],
        cache_path=Path(cfg["cache_path"]),
        min_interval_seconds=float(cfg.get("min_interval_seconds", GEOCODE_MIN_INTERVAL_SECONDS)),
        timeout=TimeoutConfig(
            connect=float(timeouts.get("connect", 5.0)),
            read=float(timeouts.get("read", 10.0)),
        ),
        max_attempts=int(cfg.get("max_attempts", 1)),
        rules=rules,
    )


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> PipelineConfig:
    overlay_path = (overlay_config_dir / CONFIG_FILENAME) if overlay_config_dir is not None else None
    cfg = validate_pipeline_config(
        _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path),
        allow_unknown=allow_unknown,
    )
    return PipelineConfig(
        metrics_source=str(cfg["sources"]["metrics"]),
        offices_source=str(cfg["sources"]["offices"]),
        metrics=_metric_settings(cfg["metrics"]),
        offices=_office_settings(cfg["offices"]),
        geocoding=_geocode_settings(cfg["geocoding"]),
        output={str(key): str(value) for key, value in cfg["output"].items()},
    )
