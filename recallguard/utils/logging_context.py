"""
Logging Context - Run and Item Correlation

Every log line emitted during a matching pass carries the pass `run_id` and
the `item_id` being matched, so one item's retrieve/rerank/decide trail can
be followed across concurrently processed items.

Context is stored in ContextVars, so each asyncio task sees its own values.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional

_run_id: ContextVar[str] = ContextVar("run_id", default="")
_item_id: ContextVar[str] = ContextVar("item_id", default="")

DEFAULT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s "
    "[run_id=%(run_id)s] [item_id=%(item_id)s] %(message)s"
)


class CorrelationIdFilter(logging.Filter):
    """Adds `run_id` and `item_id` to each LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get() or "N/A"
        record.item_id = _item_id.get() or "N/A"
        return True


class LoggingContext:
    """Accessors for the correlation context."""

    @staticmethod
    def set_run_id(run_id: Optional[str] = None) -> str:
        """Set the matching-pass id, generating one when not provided."""
        if not run_id:
            run_id = uuid.uuid4().hex[:12]
        _run_id.set(run_id)
        return run_id

    @staticmethod
    def get_run_id() -> str:
        return _run_id.get()

    @staticmethod
    def set_item_id(item_id: str) -> str:
        _item_id.set(item_id)
        return item_id

    @staticmethod
    def get_item_id() -> str:
        return _item_id.get()

    @staticmethod
    def get_context() -> Dict[str, str]:
        return {"run_id": _run_id.get(), "item_id": _item_id.get()}

    @staticmethod
    def clear_context() -> None:
        _run_id.set("")
        _item_id.set("")


@contextmanager
def run_scope(run_id: Optional[str] = None) -> Iterator[str]:
    """Tag log lines emitted inside the block with a matching-pass id."""
    token = _run_id.set(run_id or uuid.uuid4().hex[:12])
    try:
        yield _run_id.get()
    finally:
        _run_id.reset(token)


@contextmanager
def item_scope(category: str, item_id: int) -> Iterator[str]:
    """Tag log lines emitted inside the block with the item being matched."""
    token = _item_id.set(f"{category}:{item_id}")
    try:
        yield _item_id.get()
    finally:
        _item_id.reset(token)


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> None:
    """
    Configure root logging with the correlation fields.

    Args:
        log_level: Level name (DEBUG, INFO, ...).
        log_format: Custom format; must reference run_id and item_id if it
            uses them.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
