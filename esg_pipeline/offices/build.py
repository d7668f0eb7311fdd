"""Office rows to typed office records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from esg_pipeline.common.constants import DEFAULT_OFFICE_REGION, OFFICE_ID_PREFIX
from esg_pipeline.common.models import OfficeRecord
from esg_pipeline.common.values import parse_int, parse_number

DEFAULT_OFFICE_COLUMNS = {
    "region": "Regions",
    "name": "UniqueSiteName",
    "square_footage": "SF",
    "headcount": "Headcount",
}


@dataclass(frozen=True)
class OfficeSettings:
    columns: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_OFFICE_COLUMNS))
    default_region: str = DEFAULT_OFFICE_REGION
    id_prefix: str = OFFICE_ID_PREFIX


def _cell(row: Mapping[str, str], settings: OfficeSettings, key: str) -> str:
    value = row.get(settings.columns[key])
    return value.strip() if isinstance(value, str) else ""


def build_offices(
    rows: Iterable[Mapping[str, str]],
    settings: OfficeSettings | None = None,
) -> list[OfficeRecord]:
    settings = settings or OfficeSettings()
    offices: list[OfficeRecord] = []
    for index, row in enumerate(rows):
        name = _cell(row, settings, "name")
        if not name:
            continue
        headcount = parse_int(_cell(row, settings, "headcount")) or 0
        offices.append(
            OfficeRecord(
                id=f"{settings.id_prefix}{index}",
                name=name,
                region=_cell(row, settings, "region") or settings.default_region,
                headcount=max(headcount, 0),
                square_footage=parse_number(_cell(row, settings, "square_footage")),
                coordinates=None,
            )
        )
    return offices
