"""CLI entrypoint for the ESG metrics and office geocoding pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path

from esg_pipeline.common.config_loader import load_config
from esg_pipeline.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from esg_pipeline.common.errors import PipelineError
from esg_pipeline.common.ids import generate_run_id
from esg_pipeline.common.logging import build_logger, close_logger, log_event
from esg_pipeline.pipeline.reports import run_status, write_run_summary
from esg_pipeline.pipeline.runner import run_load


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--no-network", action="store_true", help="resolve offices from the geocode cache only")
    parser.add_argument("--strict", action="store_true", help="treat unresolved offices as a hard failure")
    return parser.parse_args(argv)


def resolve_stages(command: str) -> tuple[str, ...]:
    if command == "all":
        return ("metrics", "geocode")
    return (command,)


def _progress_logger(logger, run_id: str):
    last_logged = {"step": -1}

    def _on_progress(progress: float) -> None:
        step = int(progress * 10)
        if step != last_logged["step"]:
            last_logged["step"] = step
            log_event(
                logger,
                f"geocode progress {progress:.0%}",
                run_id=run_id,
                stage="geocode",
                event="GEOCODE_PROGRESS",
                status="ok",
            )

    return _on_progress


def _finish_run(args: argparse.Namespace, logger, data_dir: Path, run_id: str, result) -> int:
    write_run_summary(
        data_dir,
        run_id,
        metric_summary=result.metric_summary,
        office_count=len(result.offices) if result.offices is not None else None,
        geocode=result.geocode,
    )
    status = run_status([], result.geocode)
    log_event(logger, "run complete", run_id=run_id, event="RUN_END", status=status)
    if status == "partial":
        return EXIT_HARD_FAIL if args.strict else EXIT_PARTIAL
    return EXIT_SUCCESS


def _write_failure_summary(data_dir: Path, run_id: str, error_code: str) -> None:
    write_run_summary(
        data_dir,
        run_id,
        metric_summary=None,
        office_count=None,
        geocode=None,
        errors=[error_code],
    )


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        config = load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
        result = run_load(
            config,
            data_dir,
            run_id=run_id,
            stages=resolve_stages(args.command),
            logger=logger,
            network=not args.no_network,
            on_progress=_progress_logger(logger, run_id),
            cancel_event=threading.Event(),
        )
        return _finish_run(args, logger, data_dir, run_id, result)
    except PipelineError as exc:
        log_event(
            logger,
            f"run failed: {exc}",
            run_id=run_id,
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        _write_failure_summary(data_dir, run_id, exc.error_code)
        return EXIT_HARD_FAIL
    except KeyboardInterrupt:
        log_event(logger, "run interrupted", run_id=run_id, event="RUN_CANCELLED", status="partial")
        write_run_summary(
            data_dir,
            run_id,
            metric_summary=None,
            office_count=None,
            geocode=None,
            interrupted=True,
        )
        return EXIT_PARTIAL
    except Exception as exc:
        log_event(
            logger,
            f"unexpected failure: {exc!r}",
            level=logging.ERROR,
            run_id=run_id,
            event="RUN_FAIL",
            status="error",
            error_code="UNEXPECTED_ERROR",
        )
        _write_failure_summary(data_dir, run_id, "UNEXPECTED_ERROR")
        return EXIT_HARD_FAIL
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
