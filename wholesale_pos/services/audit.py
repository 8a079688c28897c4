"""
Order operation audit.

``log_order_operation`` writes a structured log record for every step of a
submission. ``record_order_event`` appends the outcome of a submission to the
JSONL audit file; an event for a draft order already on file is not written
twice.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from wholesale_pos.core.config import settings
from wholesale_pos.utils.atomic_file import append_jsonl, read_jsonl

logger = logging.getLogger("wholesale_pos.orders")


def log_order_operation(operation: str, order_number: str, level: int = logging.INFO, **details) -> None:
    logger.log(
        level,
        "order %s: %s",
        order_number,
        operation,
        extra={"operation": operation, "order_number": order_number, **details},
    )


def event_exists(draft_order_id: Optional[str], path: Optional[str] = None) -> bool:
    if not draft_order_id:
        return False
    for ev in read_jsonl(path or settings.audit_file):
        if ev.get("draft_order_id") == draft_order_id:
            return True
    return False


def record_order_event(event: dict, path: Optional[str] = None) -> bool:
    """Appends ``event``; returns False when its draft order is already recorded."""
    path = path or settings.audit_file
    if event_exists(event.get("draft_order_id"), path):
        return False
    ev = {"ts": datetime.now(timezone.utc).isoformat(), **event}
    append_jsonl(path, ev)
    return True
