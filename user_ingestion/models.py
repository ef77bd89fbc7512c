from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Union

Record = Dict[str, Any]


@dataclass(frozen=True)
class FetchParams:
    endpoint: str
    batch_size: int
    total_target: int
    delay_ms: int = 500
    error_backoff_ms: int = 2000
    limit_param: str | None = None


@dataclass(frozen=True)
class PageFetched:
    offset: int
    records: List[Record]


@dataclass(frozen=True)
class MalformedPage:
    offset: int
    payload_type: str


@dataclass(frozen=True)
class PageRequestFailed:
    offset: int
    error: Exception


PageOutcome = Union[PageFetched, MalformedPage, PageRequestFailed]


@dataclass(frozen=True)
class LoopStep:
    """What the fetch loop does with one page outcome.

    accept: append the batch and write its checkpoint.
    stop: no further pages are requested.
    delay_ms: pause before the next request.
    """

    accept: bool
    stop: bool
    delay_ms: int


@dataclass
class RunStats:
    pages_requested: int = 0
    pages_fetched: int = 0
    pages_malformed: int = 0
    pages_failed: int = 0
    records_fetched: int = 0
    checkpoints_written: int = 0
