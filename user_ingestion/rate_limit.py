from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class Pacer:
    """Applies the pause the fetch loop asks for between requests."""

    sleep: Callable[[float], None] = field(default=time.sleep)

    def __post_init__(self) -> None:
        self.total_waited_ms = 0

    def wait(self, delay_ms: int) -> None:
        if delay_ms <= 0:
            return
        self.sleep(delay_ms / 1000.0)
        self.total_waited_ms += delay_ms
