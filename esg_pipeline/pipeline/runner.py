"""One-shot load: decode, aggregate metrics, build and geocode offices."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from esg_pipeline.common.config_loader import PipelineConfig
from esg_pipeline.common.http import HttpClient
from esg_pipeline.common.logging import log_event
from esg_pipeline.common.models import MetricRecord, OfficeRecord
from esg_pipeline.common.tabular import read_table
from esg_pipeline.common.time_utils import elapsed_ms
from esg_pipeline.geocode.batch import (
    GeocodeBatchResult,
    Lookup,
    ProgressCallback,
    apply_cached_coordinates,
    geocode_offices,
)
from esg_pipeline.geocode.cache import GeocodeCache
from esg_pipeline.geocode.client import GeocodingClient
from esg_pipeline.metrics.aggregate import aggregate_metrics, summarise_metrics
from esg_pipeline.offices.build import build_offices
from esg_pipeline.pipeline.export import write_metrics_json, write_offices_csv, write_offices_json


@dataclass
class LoadResult:
    metrics: list[MetricRecord] | None = None
    offices: list[OfficeRecord] | None = None
    geocode: GeocodeBatchResult | None = None

    @property
    def metric_summary(self) -> dict[str, int] | None:
        if self.metrics is None:
            return None
        return summarise_metrics(self.metrics)


def _cache_path(config: PipelineConfig, data_dir: Path) -> Path:
    path = config.geocoding.cache_path
    return path if path.is_absolute() else data_dir / path


def load_metrics(
    config: PipelineConfig,
    data_dir: Path,
    *,
    run_id: str,
    logger: logging.Logger | None = None,
    http_client: HttpClient | None = None,
) -> list[MetricRecord]:
    started = time.monotonic()
    log_event(logger, "metrics stage start", run_id=run_id, stage="metrics", event="STAGE_START", status="ok")
    rows = read_table(config.metrics_source, http_client=http_client)
    metrics = aggregate_metrics(rows, config.metrics)
    write_metrics_json(data_dir / "out" / config.output["metrics_filename"], metrics)
    log_event(
        logger,
        "metrics stage end",
        run_id=run_id,
        stage="metrics",
        dataset=config.metrics_source,
        event="STAGE_END",
        status="ok",
        rows_in=len(rows),
        rows_out=len(metrics),
        duration_ms=elapsed_ms(started),
    )
    return metrics


def load_offices(
    config: PipelineConfig,
    data_dir: Path,
    *,
    run_id: str,
    geocode: bool,
    logger: logging.Logger | None = None,
    http_client: HttpClient | None = None,
    geocoding_client: Lookup | None = None,
    network: bool = True,
    on_progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
    sleep: Callable[[float], object] | None = None,
) -> tuple[list[OfficeRecord], GeocodeBatchResult | None]:
    started = time.monotonic()
    log_event(logger, "offices stage start", run_id=run_id, stage="offices", event="STAGE_START", status="ok")
    rows = read_table(config.offices_source, http_client=http_client)
    offices = build_offices(rows, config.offices)
    log_event(
        logger,
        "offices stage end",
        run_id=run_id,
        stage="offices",
        dataset=config.offices_source,
        event="STAGE_END",
        status="ok",
        rows_in=len(rows),
        rows_out=len(offices),
        duration_ms=elapsed_ms(started),
    )

    cache = GeocodeCache(_cache_path(config, data_dir))
    batch: GeocodeBatchResult | None = None
    if geocode and config.geocoding.enabled:
        started = time.monotonic()
        log_event(logger, "geocode stage start", run_id=run_id, stage="geocode", event="STAGE_START", status="ok")
        owned_client: GeocodingClient | None = None
        client = geocoding_client
        if client is None and network:
            owned_client = GeocodingClient(
                endpoint=config.geocoding.endpoint,
                timeout=config.geocoding.timeout,
                max_attempts=config.geocoding.max_attempts,
            )
            client = owned_client
        try:
            batch = geocode_offices(
                offices,
                client=client if network else None,
                cache=cache,
                rules=config.geocoding.rules,
                on_progress=on_progress,
                cancel_event=cancel_event,
                min_interval=config.geocoding.min_interval_seconds,
                sleep=sleep,
                logger=logger,
                run_id=run_id,
            )
        finally:
            if owned_client is not None:
                owned_client.close()
        offices = batch.offices
        log_event(
            logger,
            "geocode stage end",
            run_id=run_id,
            stage="geocode",
            event="STAGE_END",
            status="partial" if (batch.cancelled or batch.failures) else "ok",
            rows_in=batch.total,
            rows_out=batch.resolved + batch.pre_populated,
            duration_ms=elapsed_ms(started),
        )
    else:
        offices = apply_cached_coordinates(offices, cache)

    for warning in cache.warnings:
        log_event(
            logger,
            "geocode cache degraded",
            level=logging.WARNING,
            run_id=run_id,
            stage="geocode",
            event="CACHE_DEGRADED",
            status="warning",
            error_code=warning,
        )

    out_dir = data_dir / "out"
    write_offices_json(out_dir / config.output["offices_filename"], offices)
    csv_name = config.output.get("offices_csv_filename")
    if csv_name:
        write_offices_csv(out_dir / csv_name, offices)
    return offices, batch


def run_load(
    config: PipelineConfig,
    data_dir: Path,
    *,
    run_id: str,
    stages: tuple[str, ...],
    logger: logging.Logger | None = None,
    http_client: HttpClient | None = None,
    geocoding_client: Lookup | None = None,
    network: bool = True,
    on_progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
    sleep: Callable[[float], object] | None = None,
) -> LoadResult:
    """Run the requested stages; metrics and offices run side by side.

    A DecodeError from either branch propagates to the caller.
    """
    result = LoadResult()
    cancel_event = cancel_event or threading.Event()
    want_metrics = "metrics" in stages
    want_geocode = "geocode" in stages
    want_offices = want_geocode or "offices" in stages

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="esg-load") as pool:
        metrics_future = None
        offices_future = None
        if want_metrics:
            metrics_future = pool.submit(
                load_metrics,
                config,
                data_dir,
                run_id=run_id,
                logger=logger,
                http_client=http_client,
            )
        if want_offices:
            offices_future = pool.submit(
                load_offices,
                config,
                data_dir,
                run_id=run_id,
                geocode=want_geocode,
                logger=logger,
                http_client=http_client,
                geocoding_client=geocoding_client,
                network=network,
                on_progress=on_progress,
                cancel_event=cancel_event,
                sleep=sleep,
            )

        try:
            if metrics_future is not None:
                result.metrics = metrics_future.result()
            if offices_future is not None:
                result.offices, result.geocode = offices_future.result()
        except BaseException:
            # Stop the geocode loop at the next office instead of draining it.
            cancel_event.set()
            raise

    return result
