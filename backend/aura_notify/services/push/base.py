"""Push sender contract. Every sender resolves to a PushResult; none of them raise."""
import logging
from enum import Enum
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class PushOutcome(str, Enum):
    SUCCESS = "success"
    PERMANENT_FAILURE = "permanent-failure"  # token is dead; clear it
    TRANSIENT_FAILURE = "transient-failure"  # anything else; log and skip this run


class PushResult:
    """Outcome of one send plus the provider's reason (status/error code) for logs."""

    __slots__ = ("outcome", "reason")

    def __init__(self, outcome: PushOutcome, reason: str | None = None):
        self.outcome = outcome
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.outcome is PushOutcome.SUCCESS

    def __repr__(self) -> str:
        return f"PushResult({self.outcome.value}, {self.reason!r})"


class PushSender(Protocol):
    """Interface for FCM, APNs, etc. Same contract; only transport differs."""

    async def send(self, token: str, title: str, body: str) -> PushResult:
        ...

    async def aclose(self) -> None:
        ...


class PooledHttpSender:
    """
    One httpx.AsyncClient shared by every send of a run.

    The client is created on the first send (inside the running event loop) and closed by
    aclose(); the next run opens a fresh one. max_connections bounds the sockets a fan-out opens.
    """

    http2 = False

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        max_connections: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                http2=self.http2,
                timeout=self.timeout_seconds,
                limits=httpx.Limits(
                    max_connections=self.max_connections,
                    max_keepalive_connections=self.max_connections,
                ),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()


class NoopPushSender:
    """Used when no provider is configured: nothing is sent and nothing is recorded as delivered."""

    def __init__(self) -> None:
        self._warned = False

    async def send(self, token: str, title: str, body: str) -> PushResult:
        if not self._warned:
            logger.warning("Push not configured; skipping sends (set PUSH_PROVIDER and credentials)")
            self._warned = True
        return PushResult(PushOutcome.TRANSIENT_FAILURE, "not_configured")

    async def aclose(self) -> None:
        return None
