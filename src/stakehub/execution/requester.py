"""
Consensus-gated HTTP requester.

Each executor sends at most one outbound request per logical call (or reuses a
fresh cached reply). Results from all executors must be byte-identical before
the call is accepted.
"""

from __future__ import annotations

import base64
import hashlib
import json
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from stakehub.errors import ConsensusMismatch, DecodeError, TransportError

log = structlog.get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class CachePolicy:
    read_from_cache: bool = False
    max_age_ms: int = 0


@dataclass(frozen=True)
class HttpRequest:
    """Outbound request. `body` is base64 text, as carried by the executor transport."""

    url: str
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    cache: CachePolicy = CachePolicy()

    def body_bytes(self) -> bytes:
        return base64.b64decode(self.body) if self.body else b""

    def cache_key(self) -> str:
        h = hashlib.sha256()
        h.update(self.method.upper().encode())
        h.update(b"\0")
        h.update(self.url.encode())
        h.update(b"\0")
        h.update(self.body.encode())
        return h.hexdigest()


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def encode_json_body(payload: dict[str, Any]) -> str:
    """Canonical JSON (compact, insertion order kept) -> UTF-8 -> base64."""
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_json(body: bytes, model: type[M]) -> M:
    """Decode a UTF-8 JSON body into `model`; anything else is a DecodeError."""
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError("Response body is not UTF-8 JSON", detail=str(e)) from e
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Response body does not match {model.__name__}", detail=str(e)) from e


class ResponseCache:
    """TTL cache of successful responses, shared by the executors of one group."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[float, HttpResponse]] = {}
        self._lock = Lock()

    def get(self, key: str, max_age_ms: int) -> HttpResponse | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            ts, resp = entry
            if (time.monotonic() - ts) * 1000 <= max_age_ms:
                return resp
            del self._store[key]
            return None

    def put(self, key: str, response: HttpResponse) -> None:
        with self._lock:
            self._store[key] = (time.monotonic(), response)


class Requester:
    """One executor's HTTP sender. Always bounded by a finite timeout."""

    def __init__(
        self,
        timeout: float,
        *,
        cache: ResponseCache | None = None,
        client: httpx.Client | None = None,
        name: str = "executor-0",
    ) -> None:
        if not timeout or timeout <= 0:
            raise ValueError("Requester timeout must be a positive number of seconds")
        self.timeout = timeout
        self.cache = cache
        self.name = name
        self._client = client
        self._sent_lock = Lock()
        self.sent = 0

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def send(self, request: HttpRequest) -> HttpResponse:
        """Send the request, or reuse a cached reply no older than the policy allows."""
        key = request.cache_key()
        if self.cache is not None and request.cache.read_from_cache:
            cached = self.cache.get(key, request.cache.max_age_ms)
            if cached is not None:
                log.debug("request_cache_hit", executor=self.name, url=request.url)
                return cached
        try:
            resp = self._get_client().request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body_bytes(),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {request.url} timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request to {request.url} failed: {e}", detail=type(e).__name__) from e
        with self._sent_lock:
            self.sent += 1
        out = HttpResponse(status_code=resp.status_code, body=resp.content)
        log.debug("request_sent", executor=self.name, url=request.url, status_code=out.status_code)
        if self.cache is not None and out.ok:
            self.cache.put(key, out)
        return out

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def _fingerprint(observation: Any) -> bytes:
    if isinstance(observation, HttpResponse):
        return observation.status_code.to_bytes(2, "big") + observation.body
    if isinstance(observation, BaseModel):
        return observation.model_dump_json(by_alias=True).encode("utf-8")
    if isinstance(observation, bytes):
        return observation
    return json.dumps(observation, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def identical_aggregation(observations: Sequence[T]) -> T:
    """Accept only if every executor's observation is byte-identical."""
    if not observations:
        raise ConsensusMismatch("No observations to aggregate")
    first = _fingerprint(observations[0])
    for i, obs in enumerate(observations[1:], start=1):
        if _fingerprint(obs) != first:
            raise ConsensusMismatch(
                f"Executor {i} disagreed with executor 0 ({len(observations)} executors)"
            )
    return observations[0]


class ConsensusGroup:
    """
    Runs one logical call on every executor and aggregates the results.
    Executors share a response cache, so later executors reuse a fresh reply.
    """

    def __init__(
        self,
        executors: Sequence[Requester],
        aggregate: Callable[[Sequence[Any]], Any] = identical_aggregation,
    ) -> None:
        if not executors:
            raise ValueError("ConsensusGroup needs at least one executor")
        self.executors = list(executors)
        self.aggregate = aggregate

    @classmethod
    def create(
        cls,
        count: int,
        timeout: float,
        *,
        client_factory: Callable[[], httpx.Client] | None = None,
    ) -> ConsensusGroup:
        cache = ResponseCache()
        executors = [
            Requester(
                timeout,
                cache=cache,
                client=client_factory() if client_factory else None,
                name=f"executor-{i}",
            )
            for i in range(count)
        ]
        return cls(executors)

    def run(self, fn: Callable[..., T], *args: Any) -> T:
        """Call fn(requester, *args) once per executor; errors in any executor fail the call."""
        observations = [fn(ex, *args) for ex in self.executors]
        return self.aggregate(observations)

    def close(self) -> None:
        for ex in self.executors:
            ex.close()
