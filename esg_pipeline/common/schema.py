"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from esg_pipeline.common.errors import ConfigError

METRIC_COLUMN_KEYS = {"id", "name", "category", "unit", "year", "region", "value", "note", "target", "row_type"}
OFFICE_COLUMN_KEYS = {"region", "name", "square_footage", "headcount"}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value: object, ctx: str, *, allow_zero: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{ctx} must be {'non-negative' if allow_zero else 'positive'}")


def validate_pipeline_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "pipeline config")
    top_required = {"sources", "metrics", "offices", "geocoding", "output"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    sources = _assert_mapping(cfg["sources"], "sources")
    _assert_required_keys(sources, {"metrics", "offices"}, "sources")

    metrics = _assert_mapping(cfg["metrics"], "metrics")
    metrics_known = {
        "columns",
        "global_region",
        "missing_id_sentinel",
        "target_row_types",
        "baseline_year",
        "reference_year",
        "target_year",
    }
    _assert_required_keys(metrics, {"columns"}, "metrics")
    _assert_no_unknown_keys(metrics, metrics_known, "metrics", allow_unknown)
    metric_columns = _assert_mapping(metrics["columns"], "metrics.columns")
    _assert_required_keys(metric_columns, METRIC_COLUMN_KEYS - {"row_type"}, "metrics.columns")
    _assert_no_unknown_keys(metric_columns, METRIC_COLUMN_KEYS, "metrics.columns", allow_unknown)
    for key in ("baseline_year", "reference_year", "target_year"):
        if key in metrics and (isinstance(metrics[key], bool) or not isinstance(metrics[key], int)):
            raise ConfigError(f"metrics.{key} must be an integer year")

    offices = _assert_mapping(cfg["offices"], "offices")
    _assert_required_keys(offices, {"columns"}, "offices")
    _assert_no_unknown_keys(offices, {"columns", "default_region", "id_prefix"}, "offices", allow_unknown)
    office_columns = _assert_mapping(offices["columns"], "offices.columns")
    _assert_required_keys(office_columns, OFFICE_COLUMN_KEYS, "offices.columns")
    _assert_no_unknown_keys(office_columns, OFFICE_COLUMN_KEYS, "offices.columns", allow_unknown)

    geocoding = _assert_mapping(cfg["geocoding"], "geocoding")
    geocoding_known = {
        "enabled",
        "endpoint",
        "min_interval_seconds",
        "timeout_seconds",
        "max_attempts",
        "cache_path",
        "canonical",
    }
    _assert_required_keys(geocoding, {"enabled", "endpoint", "cache_path"}, "geocoding")
    _assert_no_unknown_keys(geocoding, geocoding_known, "geocoding", allow_unknown)
    if "min_interval_seconds" in geocoding:
        _assert_positive_number(geocoding["min_interval_seconds"], "geocoding.min_interval_seconds", allow_zero=True)
    if "max_attempts" in geocoding:
        _assert_positive_number(geocoding["max_attempts"], "geocoding.max_attempts")
    if "timeout_seconds" in geocoding:
        timeouts = _assert_mapping(geocoding["timeout_seconds"], "geocoding.timeout_seconds")
        _assert_required_keys(timeouts, {"connect", "read"}, "geocoding.timeout_seconds")
        _assert_positive_number(timeouts["connect"], "geocoding.timeout_seconds.connect")
        _assert_positive_number(timeouts["read"], "geocoding.timeout_seconds.read")
    if "canonical" in geocoding:
        canonical = _assert_mapping(geocoding["canonical"], "geocoding.canonical")
        _assert_no_unknown_keys(canonical, {"prefix", "fragments", "greedy_fragments"}, "geocoding.canonical", allow_unknown)
        for key in ("fragments", "greedy_fragments"):
            if key in canonical and not isinstance(canonical[key], list):
                raise ConfigError(f"geocoding.canonical.{key} must be a list")

    output = _assert_mapping(cfg["output"], "output")
    _assert_required_keys(output, {"metrics_filename", "offices_filename"}, "output")

    return cfg
