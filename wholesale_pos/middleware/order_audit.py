from __future__ import annotations

import json
import re

from starlette.concurrency import iterate_in_threadpool, run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from wholesale_pos.services.audit import record_order_event

SUBMIT_PATH = re.compile(r"^/checkout/sessions/(?P<sid>[^/]+)/submit$")


class OrderAuditMiddleware(BaseHTTPMiddleware):
    """Appends every successful submission to the JSONL order audit file."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        match = SUBMIT_PATH.match(request.url.path)
        if request.method != "POST" or match is None or response.status_code != 200:
            return response

        # read the body and hand it back so the client still receives it
        body_chunks = [section async for section in response.body_iterator]
        body_bytes = b"".join(body_chunks)
        response.body_iterator = iterate_in_threadpool(iter([body_bytes]))

        try:
            data = json.loads(body_bytes.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return response
        if not isinstance(data, dict) or data.get("replay"):
            return response

        event = {
            "kind": "submitted",
            "session_id": match.group("sid"),
            "order_number": data.get("order_number"),
            "draft_order_id": data.get("draft_order_id"),
            "order_name": data.get("order_name"),
            "order_id": data.get("order_id"),
            "fulfillment": data.get("fulfillment"),
            "final_total": data.get("final_total"),
            "notes": data.get("notes") or [],
            "idempotency_key": request.headers.get("Idempotency-Key"),
        }
        await run_in_threadpool(record_order_event, event)
        return response


def install_order_audit(app):
    app.add_middleware(OrderAuditMiddleware)
