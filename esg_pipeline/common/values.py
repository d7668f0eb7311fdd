"""Cell value coercion shared by every dataset."""

from __future__ import annotations

import math

from esg_pipeline.common.constants import NO_DATA_SENTINELS

THOUSANDS_SEPARATORS = (",",)


def parse_number(raw: object) -> float | None:
    """Coerce a raw cell into a float, or None when it holds no measurement.

    Thousands separators are stripped; blank cells, the no-data sentinels
    (case-sensitive) and anything ``float`` rejects all return None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None

    text = str(raw).strip()
    if not text or text in NO_DATA_SENTINELS:
        return None
    for separator in THOUSANDS_SEPARATORS:
        text = text.replace(separator, "")
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_int(raw: object) -> int | None:
    value = parse_number(raw)
    if value is None:
        return None
    return int(value)
