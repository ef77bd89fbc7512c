from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .logging_utils import get_logger, log_json
from .models import Record
from .utils import as_iso, now_utc

DEFAULT_OUTPUT_FILE = "user_data.json"


def build_envelope(records: List[Record], generated_at: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "total_users": len(records),
        "timestamp": as_iso(generated_at or now_utc()),
        "users": records,
    }


def save_records(
    records: List[Record],
    output_path: str | Path = DEFAULT_OUTPUT_FILE,
    *,
    generated_at: Optional[datetime] = None,
    logger: Optional[logging.Logger] = None,
) -> Path:
    """Write the final envelope, replacing whatever is at ``output_path``."""
    logger = logger or get_logger(__name__)
    p = Path(output_path)
    p.parent.mkdir(parents=True, exist_ok=True)

    obj = build_envelope(records, generated_at=generated_at)
    p.write_text(json.dumps(obj, indent=2), encoding="utf-8")

    log_json(logger, logging.INFO, "output_saved", total_users=obj["total_users"], path=str(p))
    return p
