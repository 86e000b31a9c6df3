"""
Observability Layer

RESPONSIBILITY: Logging setup and pipeline counters
OUTPUTS: log records, PipelineStats snapshots

WHAT THIS LAYER MUST NOT DO:
============================
- Modify pipeline behavior
- Block or delay request handling
"""

from __future__ import annotations
from collections import Counter
from typing import Dict, Union
import logging

from ..contracts import ErrorCode


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Configure the package logger once; repeated calls only adjust the level."""
    root = logging.getLogger("instance_store")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"unknown log level: {level}")
    root.setLevel(level)

    if not any(getattr(h, "_instance_store", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._instance_store = True
        root.addHandler(handler)


class PipelineStats:
    """
    Append-only counters for the ingest and retrieval pipelines.

    Counters only ever increase; snapshot() returns a copy.
    """

    def __init__(self):
        self._counts: Counter = Counter()
        self._rejections: Counter = Counter()

    def record(self, name: str, amount: int = 1):
        self._counts[name] += amount

    def record_rejection(self, code: ErrorCode):
        self._rejections[code.value] += 1

    def count(self, name: str) -> int:
        return self._counts[name]

    def rejections(self, code: ErrorCode) -> int:
        return self._rejections[code.value]

    def snapshot(self) -> Dict[str, object]:
        return {
            **dict(self._counts),
            "rejected": dict(self._rejections),
        }


__all__ = ["configure_logging", "PipelineStats", "LOG_FORMAT"]
