"""Consumer-facing exports of metric and office records."""

from __future__ import annotations

from pathlib import Path

from esg_pipeline.common.fs import write_csv, write_json
from esg_pipeline.common.models import MetricRecord, OfficeRecord

OFFICE_CSV_HEADERS = [
    "id",
    "name",
    "region",
    "headcount",
    "square_footage",
    "lat",
    "lng",
]


def write_metrics_json(path: Path, metrics: list[MetricRecord]) -> Path:
    write_json(path, {"metrics": [metric.to_dict() for metric in metrics]})
    return path


def write_offices_json(path: Path, offices: list[OfficeRecord]) -> Path:
    write_json(path, {"offices": [office.to_dict() for office in offices]})
    return path


def _serialize_office(office: OfficeRecord) -> dict:
    coords = office.coordinates
    return {
        "id": office.id,
        "name": office.name,
        "region": office.region,
        "headcount": office.headcount,
        "square_footage": "" if office.square_footage is None else office.square_footage,
        "lat": "" if coords is None else coords.lat,
        "lng": "" if coords is None else coords.lng,
    }


def write_offices_csv(path: Path, offices: list[OfficeRecord]) -> Path:
    write_csv(path, OFFICE_CSV_HEADERS, [_serialize_office(office) for office in offices])
    return path
