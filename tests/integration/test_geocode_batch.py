from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from esg_pipeline.common.models import Coordinates, OfficeRecord
from esg_pipeline.geocode.batch import OfficeState, apply_cached_coordinates, geocode_offices, office_state
from esg_pipeline.geocode.cache import GeocodeCache


class FakeGeocoder:
    def __init__(self, known: dict[str, Coordinates] | None = None, failing: set[str] | None = None):
        self.known = known or {}
        self.failing = failing or set()
        self.queries: list[str] = []
        self.last_error: str | None = None

    def lookup(self, query: str) -> Coordinates | None:
        self.queries.append(query)
        if query in self.failing:
            self.last_error = "HTTP_ERROR"
            return None
        return self.known.get(query)


class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _office(idx: int, name: str, coords: Coordinates | None = None) -> OfficeRecord:
    return OfficeRecord(id=f"office-{idx}", name=name, region="NA", coordinates=coords)


CHICAGO = Coordinates(lat=41.88, lng=-87.63)
LONDON = Coordinates(lat=51.51, lng=-0.13)
PARIS = Coordinates(lat=48.86, lng=2.35)
BERLIN = Coordinates(lat=52.52, lng=13.40)


@pytest.mark.integration
def test_only_cache_misses_hit_the_network_and_sleep(tmp_path: Path):
    cache = GeocodeCache(tmp_path / "cache.json")
    cache.put("PW-London-150", LONDON)
    offices = [
        _office(0, "PW-Chicago-7th Floor"),
        _office(1, "PW-London-150"),
        _office(2, "PW-Paris", coords=PARIS),
        _office(3, "PW-Berlin NN"),
    ]
    geocoder = FakeGeocoder(known={"Chicago": CHICAGO, "Berlin": BERLIN})
    sleeper = SleepRecorder()
    progress: list[float] = []

    result = geocode_offices(
        offices,
        client=geocoder,
        cache=cache,
        on_progress=progress.append,
        sleep=sleeper,
    )

    # N=4, K=1 cached, M=1 pre-populated.
    assert geocoder.queries == ["Chicago", "Berlin"]
    assert result.network_lookups == 2
    assert sleeper.calls == [pytest.approx(1.1), pytest.approx(1.1)]
    assert progress == [0.25, 0.5, 0.75, 1.0]
    assert progress[-1] == 1.0
    assert [o.coordinates for o in result.offices] == [CHICAGO, LONDON, PARIS, BERLIN]
    assert result.cache_hits == 1
    assert result.pre_populated == 1
    assert result.resolved == 3
    assert result.processed == 4
    assert result.failures == []
    assert offices[0].coordinates is None


@pytest.mark.integration
def test_second_run_with_persisted_cache_issues_no_lookups(tmp_path: Path):
    path = tmp_path / "state" / "cache.json"
    offices = [_office(0, "PW-Chicago-7th Floor"), _office(1, "PW-Berlin")]
    geocoder = FakeGeocoder(known={"Chicago": CHICAGO, "Berlin": BERLIN})

    first = geocode_offices(offices, client=geocoder, cache=GeocodeCache(path), sleep=SleepRecorder())
    assert first.network_lookups == 2

    second_geocoder = FakeGeocoder()
    sleeper = SleepRecorder()
    second = geocode_offices(offices, client=second_geocoder, cache=GeocodeCache(path), sleep=sleeper)

    assert second_geocoder.queries == []
    assert sleeper.calls == []
    assert second.cache_hits == 2
    assert [o.coordinates for o in second.offices] == [CHICAGO, BERLIN]


@pytest.mark.integration
def test_lookup_failure_does_not_stop_the_batch(tmp_path: Path):
    offices = [_office(0, "PW-Atlantis"), _office(1, "PW-Chicago"), _office(2, "PW-Nowhere")]
    geocoder = FakeGeocoder(known={"Chicago": CHICAGO}, failing={"Atlantis"})
    cache = GeocodeCache(tmp_path / "cache.json")
    progress: list[float] = []

    result = geocode_offices(offices, client=geocoder, cache=cache, on_progress=progress.append, sleep=SleepRecorder())

    assert geocoder.queries == ["Atlantis", "Chicago", "Nowhere"]
    assert result.failures == ["PW-Atlantis", "PW-Nowhere"]
    assert [o.coordinates for o in result.offices] == [None, CHICAGO, None]
    assert result.unresolved == 2
    assert progress[-1] == 1.0
    # Failures are not cached, so the next run tries them again.
    assert "PW-Atlantis" not in GeocodeCache(tmp_path / "cache.json")


@pytest.mark.integration
def test_progress_is_monotonic_and_ends_at_one():
    offices = [_office(i, f"Site {i}") for i in range(7)]
    progress: list[float] = []

    geocode_offices(offices, client=FakeGeocoder(), cache=GeocodeCache(None), on_progress=progress.append, sleep=SleepRecorder())

    assert len(progress) == 7
    assert progress == sorted(progress)
    assert progress[-1] == 1.0
    assert all(0 < value <= 1 for value in progress)


@pytest.mark.integration
def test_empty_batch_reports_completion():
    progress: list[float] = []

    result = geocode_offices([], client=FakeGeocoder(), cache=GeocodeCache(None), on_progress=progress.append)

    assert progress == [1.0]
    assert result.offices == []


@pytest.mark.integration
def test_cancellation_between_offices_returns_partial_result():
    cancel = threading.Event()
    offices = [_office(0, "Chicago"), _office(1, "Berlin"), _office(2, "Paris")]
    geocoder = FakeGeocoder(known={"Chicago": CHICAGO, "Berlin": BERLIN, "Paris": PARIS})
    progress: list[float] = []

    def on_progress(value: float) -> None:
        progress.append(value)
        if len(progress) == 2:
            cancel.set()

    result = geocode_offices(
        offices,
        client=geocoder,
        cache=GeocodeCache(None),
        on_progress=on_progress,
        cancel_event=cancel,
        sleep=SleepRecorder(),
    )

    assert result.cancelled is True
    assert result.processed == 2
    assert geocoder.queries == ["Chicago", "Berlin"]
    assert progress == [pytest.approx(1 / 3), pytest.approx(2 / 3)]
    assert [o.coordinates for o in result.offices] == [CHICAGO, BERLIN, None]


@pytest.mark.integration
def test_cache_only_mode_never_calls_network(tmp_path: Path):
    cache = GeocodeCache(tmp_path / "cache.json")
    cache.put("Chicago", CHICAGO)
    sleeper = SleepRecorder()

    result = geocode_offices([_office(0, "Chicago"), _office(1, "Berlin")], client=None, cache=cache, sleep=sleeper)

    assert result.network_lookups == 0
    assert sleeper.calls == []
    assert [o.coordinates for o in result.offices] == [CHICAGO, None]


def test_office_state_and_cache_prefill(tmp_path: Path):
    cache = GeocodeCache(None)
    cache.put("Chicago", CHICAGO)
    offices = [_office(0, "Chicago"), _office(1, "Paris", coords=PARIS), _office(2, "Berlin")]

    assert [office_state(o, cache) for o in offices] == [
        OfficeState.CACHED,
        OfficeState.PRE_POPULATED,
        OfficeState.NETWORK,
    ]
    assert [o.coordinates for o in apply_cached_coordinates(offices, cache)] == [CHICAGO, PARIS, None]


@pytest.mark.integration
def test_cancellation_interrupts_rate_limit_delay():
    cancel = threading.Event()

    class CancellingGeocoder(FakeGeocoder):
        def lookup(self, query: str) -> Coordinates | None:
            coords = super().lookup(query)
            cancel.set()
            return coords

    geocoder = CancellingGeocoder(known={"Chicago": CHICAGO})
    started = time.monotonic()

    result = geocode_offices(
        [_office(0, "Chicago"), _office(1, "Berlin")],
        client=geocoder,
        cache=GeocodeCache(None),
        cancel_event=cancel,
        min_interval=60.0,
    )

    assert time.monotonic() - started < 10.0
    assert result.cancelled is True
    assert result.processed == 1
    assert geocoder.queries == ["Chicago"]
