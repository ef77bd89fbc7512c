from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import Optional

from dotenv import load_dotenv

from .checkpoints import CheckpointStore
from .config import Settings, load_settings
from .errors import ConfigError
from .fetch_loop import JsonGetter, fetch_page, fetch_records
from .http_client import HttpClient, HttpConfig
from .logging_utils import configure_logging, get_logger, log_json
from .models import MalformedPage, PageFetched, RunStats
from .rate_limit import Pacer
from .writer import save_records

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def build_client(settings: Settings) -> HttpClient:
    return HttpClient(
        HttpConfig(
            user_agent=settings.http_user_agent,
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
        )
    )


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "total_users": getattr(args, "total", None),
        "batch_size": getattr(args, "batch_size", None),
        "rate_limit_delay_ms": getattr(args, "delay_ms", None),
        "error_backoff_ms": getattr(args, "backoff_ms", None),
        "output_file": getattr(args, "output", None),
        "checkpoint_dir": getattr(args, "checkpoint_dir", None),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return settings
    return replace(settings, **overrides)


def run_ingestion(settings: Settings, client: JsonGetter, pacer: Optional[Pacer] = None) -> RunStats:
    logger = get_logger()
    params = settings.fetch_params()
    stats = RunStats()

    log_json(
        logger,
        logging.INFO,
        "run_started",
        endpoint=params.endpoint,
        target=params.total_target,
        batch_size=params.batch_size,
        delay_ms=params.delay_ms,
    )

    records = fetch_records(
        client,
        params,
        CheckpointStore(settings.checkpoint_dir),
        pacer or Pacer(),
        stats=stats,
    )
    log_json(logger, logging.INFO, "run_complete", collected=len(records), stats=stats.__dict__)

    if not records:
        log_json(logger, logging.WARNING, "no_data_collected", target=params.total_target)
    save_records(records, settings.output_file)
    return stats


def validate_endpoint(settings: Settings, client: JsonGetter, offset: int) -> int:
    logger = get_logger()
    outcome = fetch_page(client, settings.fetch_params(), offset)

    if isinstance(outcome, PageFetched):
        log_json(logger, logging.INFO, "validate_ok", offset=offset, records=len(outcome.records))
        return EXIT_OK
    if isinstance(outcome, MalformedPage):
        log_json(logger, logging.WARNING, "unexpected_response_format", offset=offset, payload_type=outcome.payload_type)
        return EXIT_FAILED
    log_json(logger, logging.ERROR, "batch_failed", offset=offset, error=str(outcome.error))
    return EXIT_FAILED


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="user_ingestion")
    sub = parser.add_subparsers(dest="cmd", required=True)

    runp = sub.add_parser("run", help="Fetch all pages and write the output file")
    runp.add_argument("--total", type=int, default=None, help="Number of records to collect")
    runp.add_argument("--batch-size", type=int, default=None, help="Records requested per page")
    runp.add_argument("--delay-ms", type=int, default=None, help="Pause after each successful page")
    runp.add_argument("--backoff-ms", type=int, default=None, help="Pause after a failed request")
    runp.add_argument("--output", default=None, help="Output JSON path")
    runp.add_argument("--checkpoint-dir", default=None, help="Directory for per-batch checkpoints")

    valp = sub.add_parser("validate", help="Fetch one page and log its shape only")
    valp.add_argument("--offset", type=int, default=0)

    return parser


def main(argv=None) -> int:
    load_dotenv(override=False)
    args = _build_parser().parse_args(argv)
    logger = get_logger()

    try:
        settings = apply_overrides(load_settings(), args)
    except ConfigError as e:
        configure_logging()
        log_json(logger, logging.ERROR, "config_invalid", error=str(e))
        return EXIT_CONFIG
    configure_logging(settings.log_level)

    client = build_client(settings)
    try:
        if args.cmd == "validate":
            return validate_endpoint(settings, client, args.offset)
        run_ingestion(settings, client)
        return EXIT_OK
    except KeyboardInterrupt:
        log_json(logger, logging.WARNING, "run_interrupted")
        return EXIT_INTERRUPTED
    except Exception as e:
        log_json(logger, logging.ERROR, "run_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILED
    finally:
        client.close()
