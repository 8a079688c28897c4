import asyncio
import json
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from wholesale_pos.core.config import settings

# Guarded endpoints and the JSON key that marks a successful response
ALLOW = (
    (re.compile(r"^/checkout/sessions/[^/]+/submit$"), "draft_order_id"),
)


def _success_key(path: str):
    for pattern, key in ALLOW:
        if pattern.match(path):
            return key
    return None


class _Cache:
    def __init__(self, ttl=3600, max_entries=2048):
        self.ttl = ttl
        self.max_entries = max_entries
        self._store = {}
        self._lock = asyncio.Lock()

    async def get(self, key):
        async with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            if item["exp"] < time.time():
                self._store.pop(key, None)
                return None
            return item

    async def set(self, key, val):
        async with self._lock:
            if len(self._store) >= self.max_entries:
                self._store.pop(next(iter(self._store)))
            self._store[key] = {**val, "exp": time.time() + self.ttl}

    async def clear(self):
        async with self._lock:
            self._store.clear()


class _KeyedLocks:
    def __init__(self):
        self._locks = {}
        self._guard = asyncio.Lock()

    async def acquire(self, key):
        async with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
        await lock.acquire()
        return lock


def _drop_content_length(headers: dict) -> dict:
    return {k: v for k, v in headers.items() if k.lower() != "content-length"}


def _replay(cached) -> Response:
    body_bytes = cached["body"]
    try:
        js = json.loads(body_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        js = None
    if isinstance(js, dict):
        js.setdefault("replay", True)
        body_bytes = json.dumps(js).encode("utf-8")
    headers = _drop_content_length(dict(cached["headers"]))
    headers["Idempotent-Replay"] = "true"
    return Response(
        content=body_bytes,
        status_code=cached["status"],
        media_type=cached["media_type"],
        headers=headers,
    )


_idem_cache = _Cache(ttl=settings.idempotency_ttl)
_keyed_locks = _KeyedLocks()


class SubmitIdempotency(BaseHTTPMiddleware):
    """Replays the first successful submit for a repeated ``Idempotency-Key``."""

    async def dispatch(self, request, call_next):
        if request.method != "POST":
            return await call_next(request)

        path = request.url.path
        success_key = _success_key(path)
        if not success_key:
            return await call_next(request)

        idem_key = request.headers.get("Idempotency-Key")
        if not idem_key:
            return await call_next(request)

        cache_key = f"{request.method}:{path}:{idem_key}"

        cached = await _idem_cache.get(cache_key)
        if cached:
            return _replay(cached)

        lock = await _keyed_locks.acquire(cache_key)
        try:
            # a concurrent request with the same key may have finished meanwhile
            cached = await _idem_cache.get(cache_key)
            if cached:
                return _replay(cached)

            response = await call_next(request)
            body_bytes = b""
            async for chunk in response.body_iterator:
                body_bytes += chunk

            headers = _drop_content_length(dict(response.headers))
            new_resp = Response(
                content=body_bytes,
                status_code=response.status_code,
                media_type=response.media_type,
                headers=headers,
            )

            # only successful submissions are cached; failures may be retried
            should_cache = response.status_code == 200
            if should_cache:
                try:
                    js = json.loads(body_bytes.decode("utf-8"))
                    should_cache = isinstance(js, dict) and (success_key in js)
                except (UnicodeDecodeError, json.JSONDecodeError):
                    should_cache = False

            if should_cache:
                await _idem_cache.set(
                    cache_key,
                    {
                        "status": new_resp.status_code,
                        "headers": dict(new_resp.headers),
                        "media_type": new_resp.media_type,
                        "body": body_bytes,
                    },
                )

            return new_resp
        finally:
            lock.release()


def install_idempotency(app):
    app.add_middleware(SubmitIdempotency)
