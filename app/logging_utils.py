"""
app/logging_utils.py

Structured logging helper for fetch, persistence and rate-limit events.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    ``event`` is a dotted name such as ``"fetch.optional_failed"``; *fields*
    are serialised with ``str`` as a fallback for dates and UUIDs.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
