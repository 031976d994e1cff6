"""
Tests for the remote gateway.
"""

import json

import httpx
import pytest

from conftest import BACKEND_URL, FakeBackend
from guestnama.actions import Action
from guestnama.gateway import RemoteError, RemoteGateway, RemoteRejected, TransportError
from guestnama.models import Account


def gateway_for(handler) -> RemoteGateway:
    return RemoteGateway(url=BACKEND_URL, transport=httpx.MockTransport(handler))


class TestRemoteGatewayCall:
    """Tests for RemoteGateway.call."""

    @pytest.mark.asyncio
    async def test_posts_action_and_payload(self) -> None:
        """Test the request body carries the action and payload."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": [1, 2]})

        async with gateway_for(handler) as gateway:
            data = await gateway.call(Action.GET_TASKS, {"userId": "u1"})

        assert data == [1, 2]
        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == BACKEND_URL
        assert json.loads(seen[0].content) == {"action": "getTasks", "payload": {"userId": "u1"}}

    @pytest.mark.asyncio
    async def test_missing_payload_sends_empty_object(self) -> None:
        """Test payload defaults to {}."""
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        async with gateway_for(handler) as gateway:
            data = await gateway.call("getUsers")

        assert data is None
        assert bodies == [{"action": "getUsers", "payload": {}}]

    @pytest.mark.asyncio
    async def test_rejection_raises_with_message(self) -> None:
        """Test success=false becomes RemoteRejected carrying the error."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "Quota exceeded"})

        async with gateway_for(handler) as gateway:
            with pytest.raises(RemoteRejected) as exc_info:
                await gateway.call(Action.ADD_GUEST, {})

        assert exc_info.value.action == "addGuest"
        assert exc_info.value.message == "Quota exceeded"
        assert gateway.stats.rejections == 1

    @pytest.mark.asyncio
    async def test_rejection_without_error_message(self) -> None:
        """Test a rejection without an error string still raises."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False})

        async with gateway_for(handler) as gateway:
            with pytest.raises(RemoteRejected, match="Request rejected"):
                await gateway.call(Action.ADD_GUEST, {})

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        """Test network errors become TransportError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with gateway_for(handler) as gateway:
            with pytest.raises(TransportError) as exc_info:
                await gateway.call(Action.GET_USERS)

        assert isinstance(exc_info.value, RemoteError)
        assert exc_info.value.action == "getUsers"
        assert gateway.stats.transport_errors == 1
        assert gateway.stats.requests == 1

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """Test timeouts become TransportError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with gateway_for(handler) as gateway:
            with pytest.raises(TransportError):
                await gateway.call(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_http_error_without_envelope(self) -> None:
        """Test a 500 with a plain body reports the status."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="Internal Server Error")

        async with gateway_for(handler) as gateway:
            with pytest.raises(TransportError, match="HTTP 500"):
                await gateway.call(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_http_error_with_envelope(self) -> None:
        """Test an error status that still carries an envelope is honored."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"success": False, "error": "Sheet locked"})

        async with gateway_for(handler) as gateway:
            with pytest.raises(RemoteRejected, match="Sheet locked"):
                await gateway.call(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        """Test a non-JSON body is a transport error."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>login required</html>")

        async with gateway_for(handler) as gateway:
            with pytest.raises(TransportError, match="not a valid envelope"):
                await gateway.call(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_json_without_success_flag(self) -> None:
        """Test JSON that is not an envelope is a transport error."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": "u1"}])

        async with gateway_for(handler) as gateway:
            with pytest.raises(TransportError):
                await gateway.call(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_not_opened(self) -> None:
        """Test calling before entering the context fails loudly."""
        gateway = gateway_for(lambda request: httpx.Response(200, json={"success": True}))

        with pytest.raises(RuntimeError, match="not initialized"):
            await gateway.call(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self) -> None:
        """Test an injected client is not closed on exit."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"success": True}))
        async with httpx.AsyncClient(transport=transport) as client:
            async with RemoteGateway(url=BACKEND_URL, client=client) as gateway:
                await gateway.call(Action.GET_USERS)

            assert not client.is_closed


class TestRemoteGatewayInvoke:
    """Tests for typed invocation."""

    @pytest.mark.asyncio
    async def test_parses_accounts(self, gateway: RemoteGateway) -> None:
        """Test getUsers returns Account models."""
        accounts = await gateway.invoke(Action.GET_USERS)

        assert len(accounts) == 1
        assert isinstance(accounts[0], Account)
        assert accounts[0].role.value == "ADMIN"

    @pytest.mark.asyncio
    async def test_sends_wire_payload(self, gateway: RemoteGateway, backend: FakeBackend) -> None:
        """Test typed payloads go out in camelCase."""
        await gateway.invoke(Action.VERIFY_SESSION, {"user_id": "admin-001"})

        assert backend.payloads[-1] == {"userId": "admin-001"}

    @pytest.mark.asyncio
    async def test_unexpected_response_shape(self) -> None:
        """Test response data of the wrong type is a transport error."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": "yes"})

        async with gateway_for(handler) as gateway:
            with pytest.raises(TransportError, match="Unexpected response data"):
                await gateway.invoke(Action.GET_USERS)

    @pytest.mark.asyncio
    async def test_invalid_payload_never_sent(self, gateway: RemoteGateway, backend: FakeBackend) -> None:
        """Test payload validation happens before the request."""
        with pytest.raises(ValueError):
            await gateway.invoke(Action.VERIFY_SESSION, {})

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_stats_string(self, gateway: RemoteGateway) -> None:
        """Test the stats summary counts requests."""
        await gateway.invoke(Action.GET_USERS)
        await gateway.invoke(Action.GET_GUESTS, {"user_id": "u1", "role": "USER"})

        assert gateway.stats.requests == 2
        assert "Requests: 2" in str(gateway.stats)
