"""
Remote Gateway - single chokepoint to the GuestNama backend

Every remote call goes through RemoteGateway.call: one HTTP POST carrying
{"action", "payload"} to the configured endpoint, answered by a uniform
envelope {"success", "data"?, "error"?}.

The gateway does not retry, cache or queue. Retry policy belongs to callers.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from guestnama.actions import Action, build_payload, parse_response
from guestnama.config import settings

logger = logging.getLogger(__name__)


class GuestNamaError(Exception):
    """Base class for client errors."""


class RemoteError(GuestNamaError):
    """A remote call did not produce data."""

    def __init__(self, action: str, message: str):
        self.action = action
        self.message = message
        super().__init__(f"{action}: {message}")


class TransportError(RemoteError):
    """The request never produced a usable envelope (network, timeout, bad body)."""


class RemoteRejected(RemoteError):
    """The backend answered with success=false."""


@dataclass
class GatewayStats:
    """Counters for calls made through one gateway."""

    requests: int = 0
    rejections: int = 0
    transport_errors: int = 0
    http_time: float = 0.0
    start_time: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return (
            f"Requests: {self.requests} | "
            f"Rejected: {self.rejections} | "
            f"Transport errors: {self.transport_errors} | "
            f"HTTP Time: {self.http_time:.2f}s"
        )


class RemoteGateway:
    """
    Async client for the GuestNama backend endpoint.

    Usage:
        async with RemoteGateway() as gateway:
            users = await gateway.invoke(Action.GET_USERS)

    An httpx.AsyncClient (or just a transport) may be injected, which is how
    tests route calls to an in-memory backend.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or settings.backend_url
        self.timeout = timeout or settings.request_timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None
        self.stats = GatewayStats()

    async def __aenter__(self) -> "RemoteGateway":
        """Async context manager entry."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Accept": "application/json",
                    "User-Agent": settings.user_agent,
                },
                follow_redirects=True,
                transport=self._transport,
            )
            self._owns_client = True
        self.stats = GatewayStats()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def call(self, action: Action | str, payload: dict[str, Any] | None = None) -> Any:
        """
        Send one action to the backend and unwrap the envelope.

        Args:
            action: Remote action name
            payload: JSON-ready payload

        Returns:
            The envelope's data (None when absent)

        Raises:
            RemoteRejected: The backend reported success=false
            TransportError: Network failure, timeout, or an unusable response
            RuntimeError: The gateway was not opened
        """
        if self._client is None:
            raise RuntimeError("Gateway not initialized. Use 'async with' context manager.")

        name = action.value if isinstance(action, Action) else action
        body = {"action": name, "payload": payload or {}}

        start = time.time()
        try:
            response = await self._client.post(self.url, json=body)
        except httpx.HTTPError as e:
            self.stats.transport_errors += 1
            logger.debug("Transport failure for %s: %r", name, e)
            raise TransportError(name, str(e) or type(e).__name__) from e
        finally:
            self.stats.requests += 1
            self.stats.http_time += time.time() - start

        envelope = self._parse_envelope(name, response)

        if not envelope["success"]:
            self.stats.rejections += 1
            message = str(envelope.get("error") or "Request rejected")
            logger.debug("Backend rejected %s: %s", name, message)
            raise RemoteRejected(name, message)

        return envelope.get("data")

    def _parse_envelope(self, name: str, response: httpx.Response) -> dict[str, Any]:
        """Decode the response body, accepting error statuses only if they carry an envelope."""
        try:
            envelope = response.json()
        except ValueError:
            envelope = None

        if not isinstance(envelope, dict) or not isinstance(envelope.get("success"), bool):
            self.stats.transport_errors += 1
            if response.is_success:
                raise TransportError(name, "Response is not a valid envelope")
            raise TransportError(name, f"HTTP {response.status_code}")

        return envelope

    async def invoke(self, action: Action, payload: BaseModel | dict[str, Any] | None = None) -> Any:
        """Typed call: validate the payload, send it, and validate the response."""
        data = await self.call(action, build_payload(action, payload))
        try:
            return parse_response(action, data)
        except ValidationError as e:
            raise TransportError(action.value, f"Unexpected response data: {e.error_count()} error(s)") from e
