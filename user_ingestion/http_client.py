from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests


@dataclass
class HttpConfig:
    user_agent: str
    connect_timeout: float = 10.0
    read_timeout: float = 30.0


class HttpClient:
    """Single-shot JSON GETs over a shared session.

    Never retries: a page that fails is reported to the caller once and
    the caller moves on to the next offset.
    """

    def __init__(self, cfg: HttpConfig, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": cfg.user_agent, "Accept": "application/json"})

    def get_json(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET ``url`` and return the decoded body.

        Raises requests.RequestException on connection errors, timeouts and
        non-2xx statuses. A body that is not JSON comes back as text.
        """
        resp = self.session.get(
            url,
            params=params,
            timeout=(self.cfg.connect_timeout, self.cfg.read_timeout),
        )
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def close(self) -> None:
        self.session.close()
