from __future__ import annotations

import json
import os
import threading
from typing import Iterator

__all__ = ["append_jsonl", "read_jsonl"]

_LOCK = threading.Lock()


def append_jsonl(path: str, obj: dict) -> None:
    """
    Appends one JSON line and fsyncs it. The file is never rewritten, so an
    append stays O(1) however large the log grows.
    """
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    line = json.dumps(obj, ensure_ascii=False, default=str)
    with _LOCK:
        with open(path, "a", encoding="utf-8", newline="\n") as f:
            f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())


def read_jsonl(path: str) -> Iterator[dict]:
    """Yields each well-formed JSON object in ``path``; torn lines are skipped."""
    if not os.path.exists(path):
        return
    with open(path, encoding="utf-8") as f:
        for ln in f:
            ln = ln.strip()
            if not ln:
                continue
            try:
                obj = json.loads(ln)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                yield obj
