"""Fold metric rows into per-metric records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping

from esg_pipeline.common.constants import (
    BASELINE_YEAR,
    GLOBAL_REGION,
    MISSING_ID_SENTINEL,
    REFERENCE_YEAR,
    TARGET_YEAR,
)
from esg_pipeline.common.models import DataPoint, MetricRecord, Target
from esg_pipeline.common.values import parse_int, parse_number
from esg_pipeline.metrics.targets import derive_target

DEFAULT_METRIC_COLUMNS = {
    "id": "Metric ID",
    "name": "Metric Name",
    "category": "Environmental Dimensions",
    "unit": "Units",
    "year": "Year",
    "region": "Region",
    "value": "Performance",
    "note": "Data Quality Note",
    "target": "Future (2030 Target)",
    "row_type": "Type",
}


@dataclass(frozen=True)
class MetricSettings:
    columns: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_METRIC_COLUMNS))
    global_region: str = GLOBAL_REGION
    missing_id_sentinel: str = MISSING_ID_SENTINEL
    target_row_types: tuple[str, ...] = ("Target",)
    baseline_year: int = BASELINE_YEAR
    reference_year: int = REFERENCE_YEAR
    target_year: int = TARGET_YEAR


class RowKind(Enum):
    GLOBAL_ACTUAL = "global_actual"
    GLOBAL_TARGET = "global_target"
    REGIONAL = "regional"
    REGIONAL_TARGET = "regional_target"


@dataclass
class _MetricAccumulator:
    id: str
    name: str
    category: str
    unit: str
    baseline_value: float = 0.0
    baseline_set: bool = False
    data_points: list[DataPoint] = field(default_factory=list)
    targets: dict[int, Target] = field(default_factory=dict)
    regions: dict[str, float] = field(default_factory=dict)

    def freeze(self) -> MetricRecord:
        return MetricRecord(
            id=self.id,
            name=self.name,
            category=self.category,
            unit=self.unit,
            baseline_value=self.baseline_value,
            data_points=tuple(sorted(self.data_points, key=lambda point: point.year)),
            targets=dict(self.targets),
            regions=dict(self.regions),
        )


def _cell(row: Mapping[str, str], settings: MetricSettings, key: str) -> str:
    column = settings.columns.get(key)
    if not column:
        return ""
    value = row.get(column)
    return value.strip() if isinstance(value, str) else ""


def resolve_metric_id(row: Mapping[str, str], settings: MetricSettings) -> str:
    metric_id = _cell(row, settings, "id")
    if metric_id == settings.missing_id_sentinel:
        return _cell(row, settings, "name")
    return metric_id


def classify_row(row: Mapping[str, str], settings: MetricSettings) -> RowKind:
    is_target = _cell(row, settings, "row_type").casefold() in {
        kind.casefold() for kind in settings.target_row_types
    }
    if _cell(row, settings, "region") == settings.global_region:
        return RowKind.GLOBAL_TARGET if is_target else RowKind.GLOBAL_ACTUAL
    return RowKind.REGIONAL_TARGET if is_target else RowKind.REGIONAL


def _find_or_create(
    metrics: dict[str, _MetricAccumulator],
    metric_id: str,
    row: Mapping[str, str],
    settings: MetricSettings,
) -> _MetricAccumulator:
    metric = metrics.get(metric_id)
    if metric is None:
        metric = _MetricAccumulator(
            id=metric_id,
            name=_cell(row, settings, "name"),
            category=_cell(row, settings, "category"),
            unit=_cell(row, settings, "unit"),
        )
        metrics[metric_id] = metric
    return metric


def _apply_global_row(
    metric: _MetricAccumulator,
    row: Mapping[str, str],
    kind: RowKind,
    year: int | None,
    value: float,
    settings: MetricSettings,
) -> None:
    if year == settings.baseline_year:
        if not metric.baseline_set:
            metric.baseline_value = value
            metric.baseline_set = True
        if settings.target_year not in metric.targets:
            target_text = _cell(row, settings, "target")
            target_value = derive_target(target_text, value)
            if target_value is not None:
                metric.targets[settings.target_year] = Target(value=target_value, label=target_text)

    if kind is RowKind.GLOBAL_ACTUAL and year is not None:
        metric.data_points.append(
            DataPoint(year=year, value=value, note=_cell(row, settings, "note") or None)
        )


def aggregate_metrics(
    rows: Iterable[Mapping[str, str]],
    settings: MetricSettings | None = None,
) -> list[MetricRecord]:
    """Fold decoded metric rows into records, in first-seen order.

    Rows without a usable identifier are skipped. Metrics whose values never
    parse are still returned, with a zero baseline and no data points.
    """
    settings = settings or MetricSettings()
    metrics: dict[str, _MetricAccumulator] = {}

    for row in rows:
        if not _cell(row, settings, "name") and not _cell(row, settings, "id"):
            continue
        metric_id = resolve_metric_id(row, settings)
        if not metric_id:
            continue

        metric = _find_or_create(metrics, metric_id, row, settings)
        value = parse_number(_cell(row, settings, "value"))
        if value is None:
            continue
        year = parse_int(_cell(row, settings, "year"))
        kind = classify_row(row, settings)

        if kind in (RowKind.GLOBAL_ACTUAL, RowKind.GLOBAL_TARGET):
            _apply_global_row(metric, row, kind, year, value, settings)
        elif kind is RowKind.REGIONAL and year == settings.reference_year:
            region = _cell(row, settings, "region")
            if region:
                metric.regions[region] = value

    return [metric.freeze() for metric in metrics.values()]


def summarise_metrics(records: Iterable[MetricRecord]) -> dict[str, int]:
    records = list(records)
    return {
        "metrics": len(records),
        "metrics_without_data": sum(1 for record in records if not record.has_data),
        "metrics_with_targets": sum(1 for record in records if record.targets),
        "metrics_with_regions": sum(1 for record in records if record.regions),
        "data_points": sum(len(record.data_points) for record in records),
    }
