"""
Structured logging helpers for ingestion lifecycle events.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from emissions_ingest.domain.canonical import Problem


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def log_row_problem(logger: logging.Logger, problem: Problem, **fields: Any) -> None:
    log_event(
        logger,
        logging.WARNING,
        "ingest.row_problem",
        row_index=problem.row_index,
        field=problem.field,
        column=problem.column,
        reason=problem.reason,
        raw_value=problem.raw_value,
        **fields,
    )
