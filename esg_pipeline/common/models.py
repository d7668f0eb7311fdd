"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, payload: Any) -> "Coordinates | None":
        if not isinstance(payload, dict):
            return None
        lat = payload.get("lat")
        lng = payload.get("lng")
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
            return None
        return cls(lat=float(lat), lng=float(lng))


@dataclass(frozen=True)
class DataPoint:
    year: int
    value: float
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"year": self.year, "value": self.value}
        if self.note is not None:
            out["note"] = self.note
        return out


@dataclass(frozen=True)
class Target:
    value: float
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class MetricRecord:
    """One sustainability indicator aggregated over all of its source rows.

    ``baseline_value`` of 0 means no global baseline-year reading was found,
    not a measured zero.
    """

    id: str
    name: str
    category: str
    unit: str
    baseline_value: float = 0.0
    data_points: tuple[DataPoint, ...] = ()
    targets: dict[int, Target] = field(default_factory=dict)
    regions: dict[str, float] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return bool(self.data_points)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "baselineValue": self.baseline_value,
            "dataPoints": [point.to_dict() for point in self.data_points],
            "targets": {str(year): target.to_dict() for year, target in sorted(self.targets.items())},
            "regions": dict(self.regions),
        }


@dataclass(frozen=True)
class OfficeRecord:
    id: str
    name: str
    region: str
    headcount: int = 0
    square_footage: float | None = None
    coordinates: Coordinates | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "region": self.region,
            "headcount": self.headcount,
            "squareFootage": self.square_footage,
            "coordinates": self.coordinates.to_dict() if self.coordinates is not None else None,
        }
