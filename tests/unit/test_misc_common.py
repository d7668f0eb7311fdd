import json
import logging
from pathlib import Path

from esg_pipeline.common.constants import JSON_LOG_FIELDS
from esg_pipeline.common.ids import generate_run_id
from esg_pipeline.common.logging import JsonLineFormatter, build_logger, close_logger, log_event
from esg_pipeline.common.models import Coordinates, DataPoint, MetricRecord, OfficeRecord, Target


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_json_formatter_emits_stable_schema():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    record.event = "GEOCODE_LOOKUP_OK"
    record.office = "PW-Chicago"

    payload = json.loads(JsonLineFormatter().format(record))

    assert set(JSON_LOG_FIELDS) <= set(payload)
    assert payload["message"] == "hello"
    assert payload["event"] == "GEOCODE_LOOKUP_OK"
    assert payload["office"] == "PW-Chicago"
    assert payload["rows_in"] is None


def test_build_logger_writes_jsonl_file(tmp_path: Path):
    logger = build_logger("run-log", tmp_path)
    log_event(logger, "stage start", run_id="run-log", stage="metrics", event="STAGE_START", status="ok")
    close_logger(logger)

    lines = (tmp_path / "run_meta" / "run-log.log.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["stage"] == "metrics"


def test_log_event_without_logger_is_noop():
    log_event(None, "ignored", event="X")


def test_record_serialisation_uses_consumer_keys():
    metric = MetricRecord(
        id="E1",
        name="Energy",
        category="Energy",
        unit="MWh",
        baseline_value=10.0,
        data_points=(DataPoint(year=2022, value=10.0, note="Metered"), DataPoint(year=2023, value=9.0)),
        targets={2030: Target(value=4.0, label="60% reduction")},
        regions={"Europe": 3.0},
    )
    office = OfficeRecord(id="office-0", name="PW-X", region="NA", coordinates=Coordinates(lat=1.0, lng=2.0))

    assert metric.to_dict() == {
        "id": "E1",
        "name": "Energy",
        "category": "Energy",
        "unit": "MWh",
        "baselineValue": 10.0,
        "dataPoints": [{"year": 2022, "value": 10.0, "note": "Metered"}, {"year": 2023, "value": 9.0}],
        "targets": {"2030": {"value": 4.0, "label": "60% reduction"}},
        "regions": {"Europe": 3.0},
    }
    assert office.to_dict()["coordinates"] == {"lat": 1.0, "lng": 2.0}
    assert office.to_dict()["squareFootage"] is None


def test_coordinates_from_dict_rejects_non_numeric():
    assert Coordinates.from_dict({"lat": 1, "lng": 2}) == Coordinates(lat=1.0, lng=2.0)
    assert Coordinates.from_dict({"lat": True, "lng": 2}) is None
    assert Coordinates.from_dict({"lat": "1", "lng": 2}) is None
    assert Coordinates.from_dict(None) is None
