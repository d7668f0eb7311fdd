"""Sequential, cache-first geocoding of an office list."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Protocol

from esg_pipeline.common.constants import GEOCODE_MIN_INTERVAL_SECONDS
from esg_pipeline.common.logging import log_event
from esg_pipeline.common.models import Coordinates, OfficeRecord
from esg_pipeline.common.time_utils import elapsed_ms
from esg_pipeline.geocode.cache import GeocodeCache
from esg_pipeline.geocode.canonical import CanonicalRules, canonicalize_office_name

ProgressCallback = Callable[[float], None]


class Lookup(Protocol):
    def lookup(self, query: str) -> Coordinates | None: ...


class OfficeState(Enum):
    PRE_POPULATED = "pre_populated"
    CACHED = "cached"
    NETWORK = "network"


@dataclass
class GeocodeBatchResult:
    offices: list[OfficeRecord]
    total: int
    processed: int = 0
    pre_populated: int = 0
    cache_hits: int = 0
    network_lookups: int = 0
    resolved: int = 0
    failures: list[str] = field(default_factory=list)
    cancelled: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def unresolved(self) -> int:
        return sum(1 for office in self.offices if office.coordinates is None)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "pre_populated": self.pre_populated,
            "cache_hits": self.cache_hits,
            "network_lookups": self.network_lookups,
            "resolved": self.resolved,
            "unresolved": self.unresolved,
            "failures": list(self.failures),
            "cancelled": self.cancelled,
            "warnings": list(self.warnings),
        }


def office_state(office: OfficeRecord, cache: GeocodeCache) -> OfficeState:
    if office.coordinates is not None:
        return OfficeState.PRE_POPULATED
    if cache.get(office.name) is not None:
        return OfficeState.CACHED
    return OfficeState.NETWORK


def apply_cached_coordinates(offices: list[OfficeRecord], cache: GeocodeCache) -> list[OfficeRecord]:
    """Fill coordinates from the cache alone, without touching the network."""
    out: list[OfficeRecord] = []
    for office in offices:
        cached = cache.get(office.name) if office.coordinates is None else None
        out.append(replace(office, coordinates=cached) if cached is not None else office)
    return out


def geocode_offices(
    offices: list[OfficeRecord],
    *,
    client: Lookup | None,
    cache: GeocodeCache,
    rules: CanonicalRules | None = None,
    on_progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
    min_interval: float = GEOCODE_MIN_INTERVAL_SECONDS,
    sleep: Callable[[float], object] | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> GeocodeBatchResult:
    """Resolve coordinates for every office, one network lookup at a time.

    Offices already carrying coordinates and cache hits cost no request and
    no delay. Each network lookup is followed by ``min_interval`` seconds of
    sleep, cut short when ``cancel_event`` is set. A failed lookup leaves the
    office unresolved and the batch moves on. Cancellation is honoured between
    offices only; the returned list then holds the offices processed so far
    plus the untouched remainder.

    With ``client=None`` only the cache is consulted.
    """
    if sleep is None:
        sleep = cancel_event.wait if cancel_event is not None else time.sleep
    updated = list(offices)
    total = len(updated)
    result = GeocodeBatchResult(offices=updated, total=total)

    if total == 0:
        if on_progress is not None:
            on_progress(1.0)
        result.warnings = list(cache.warnings)
        return result

    for index, office in enumerate(updated):
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            log_event(
                logger,
                "geocode batch cancelled",
                run_id=run_id,
                stage="geocode",
                event="GEOCODE_CANCELLED",
                status="partial",
                rows_in=total,
                rows_out=result.processed,
            )
            break

        state = office_state(office, cache)
        if state is OfficeState.PRE_POPULATED:
            result.pre_populated += 1
        elif state is OfficeState.CACHED:
            result.cache_hits += 1
            result.resolved += 1
            updated[index] = replace(office, coordinates=cache.get(office.name))
            log_event(
                logger,
                "geocode cache hit",
                level=logging.DEBUG,
                run_id=run_id,
                stage="geocode",
                office=office.name,
                event="GEOCODE_CACHE_HIT",
                status="ok",
            )
        elif client is not None:
            query = canonicalize_office_name(office.name, rules)
            started = time.monotonic()
            coords = client.lookup(query)
            duration_ms = elapsed_ms(started)
            result.network_lookups += 1
            if coords is not None:
                cache.put(office.name, coords)
                updated[index] = replace(office, coordinates=coords)
                result.resolved += 1
                log_event(
                    logger,
                    f"geocoded {office.name!r} as {query!r}",
                    run_id=run_id,
                    stage="geocode",
                    office=office.name,
                    event="GEOCODE_LOOKUP_OK",
                    status="ok",
                    duration_ms=duration_ms,
                )
            else:
                result.failures.append(office.name)
                log_event(
                    logger,
                    f"no match for {office.name!r} (query {query!r})",
                    level=logging.WARNING,
                    run_id=run_id,
                    stage="geocode",
                    office=office.name,
                    event="GEOCODE_LOOKUP_FAIL",
                    status="error",
                    duration_ms=duration_ms,
                    error_code=getattr(client, "last_error", None),
                )
            sleep(min_interval)

        result.processed += 1
        if on_progress is not None:
            on_progress(result.processed / total)

    result.warnings = list(cache.warnings)
    return result
