"""Offset-paginated fetch loop.

Pages are requested strictly in order. Every page ends in one of three
outcomes and ``next_step`` maps each outcome to what the loop does next:

    PageFetched        accept, stop once the target is reached, else pause delay_ms
    MalformedPage      skip, no pause
    PageRequestFailed  skip, pause error_backoff_ms

A skipped offset is never requested again.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Protocol

import requests

from .checkpoints import CheckpointStore
from .logging_utils import get_logger, log_json
from .models import (
    FetchParams,
    LoopStep,
    MalformedPage,
    PageFetched,
    PageOutcome,
    PageRequestFailed,
    Record,
    RunStats,
)
from .rate_limit import Pacer


class JsonGetter(Protocol):
    def get_json(self, url: str, params: Optional[dict] = None) -> Any: ...


def plan_offsets(total_target: int, batch_size: int) -> List[int]:
    if batch_size <= 0:
        raise ValueError(f"batch_size must be > 0, got {batch_size}")
    num_pages = math.ceil(max(total_target, 0) / batch_size)
    return [page * batch_size for page in range(num_pages)]


def page_query(params: FetchParams, offset: int) -> dict:
    query: dict = {"offset": offset}
    if params.limit_param:
        query[params.limit_param] = params.batch_size
    return query


def fetch_page(client: JsonGetter, params: FetchParams, offset: int) -> PageOutcome:
    try:
        body = client.get_json(params.endpoint, params=page_query(params, offset))
    except requests.RequestException as e:
        return PageRequestFailed(offset=offset, error=e)

    if isinstance(body, list):
        return PageFetched(offset=offset, records=body)
    return MalformedPage(offset=offset, payload_type=type(body).__name__)


def next_step(outcome: PageOutcome, collected: int, params: FetchParams, pages_left: int) -> LoopStep:
    """Decide how the loop proceeds after one page.

    ``collected`` is the record count before this page; ``pages_left`` is
    how many offsets remain after this one.
    """
    if isinstance(outcome, PageFetched):
        if collected + len(outcome.records) >= params.total_target:
            return LoopStep(accept=True, stop=True, delay_ms=0)
        step = LoopStep(accept=True, stop=False, delay_ms=params.delay_ms)
    elif isinstance(outcome, MalformedPage):
        step = LoopStep(accept=False, stop=False, delay_ms=0)
    elif isinstance(outcome, PageRequestFailed):
        step = LoopStep(accept=False, stop=False, delay_ms=params.error_backoff_ms)
    else:
        raise TypeError(f"Unknown page outcome: {outcome!r}")

    if pages_left <= 0:
        return LoopStep(accept=step.accept, stop=False, delay_ms=0)
    return step


def fetch_records(
    client: JsonGetter,
    params: FetchParams,
    checkpoints: CheckpointStore,
    pacer: Pacer,
    stats: Optional[RunStats] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Record]:
    logger = logger or get_logger(__name__)
    stats = stats if stats is not None else RunStats()
    collected: List[Record] = []

    offsets = plan_offsets(params.total_target, params.batch_size)
    for i, offset in enumerate(offsets):
        outcome = fetch_page(client, params, offset)
        stats.pages_requested += 1
        step = next_step(outcome, len(collected), params, pages_left=len(offsets) - i - 1)

        if isinstance(outcome, PageFetched) and step.accept:
            collected.extend(outcome.records)
            path = checkpoints.write(offset, outcome.records)
            stats.pages_fetched += 1
            stats.records_fetched += len(outcome.records)
            stats.checkpoints_written += 1
            log_json(logger, logging.DEBUG, "checkpoint_written", offset=offset, path=str(path))
            log_json(
                logger,
                logging.INFO,
                "batch_fetched",
                offset=offset,
                batch=len(outcome.records),
                collected=len(collected),
                target=params.total_target,
            )
        elif isinstance(outcome, MalformedPage):
            stats.pages_malformed += 1
            log_json(logger, logging.WARNING, "unexpected_response_format", offset=offset, payload_type=outcome.payload_type)
        else:
            stats.pages_failed += 1
            log_json(
                logger,
                logging.ERROR,
                "batch_failed",
                offset=offset,
                error=str(outcome.error),
                error_type=type(outcome.error).__name__,
                backoff_ms=step.delay_ms,
            )

        if step.stop:
            break
        pacer.wait(step.delay_ms)

    return collected[: params.total_target]
