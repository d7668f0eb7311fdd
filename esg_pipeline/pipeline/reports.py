"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from esg_pipeline.common.fs import write_json
from esg_pipeline.geocode.batch import GeocodeBatchResult


def run_status(errors: list[str], geocode: GeocodeBatchResult | None, *, interrupted: bool = False) -> str:
    if errors:
        return "error"
    if interrupted:
        return "partial"
    if geocode is not None and (geocode.cancelled or geocode.failures or geocode.warnings):
        return "partial"
    return "success"


def write_run_summary(
    data_dir: Path,
    run_id: str,
    *,
    metric_summary: dict[str, int] | None,
    office_count: int | None,
    geocode: GeocodeBatchResult | None,
    errors: list[str] | None = None,
    interrupted: bool = False,
) -> Path:
    errors = list(errors or [])
    payload = {
        "run_id": run_id,
        "status": run_status(errors, geocode, interrupted=interrupted),
        "metrics": metric_summary,
        "offices": office_count,
        "geocode": geocode.to_dict() if geocode is not None else None,
        "errors": errors,
    }
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    write_json(summary_path, payload)
    return summary_path
