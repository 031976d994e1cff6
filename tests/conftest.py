"""
Pytest configuration and fixtures.

Remote calls are served by FakeBackend, an in-memory implementation of the
backend actions mounted on httpx.MockTransport, so tests exercise the real
gateway and envelope handling.
"""

import json
from typing import Any, AsyncIterator, Callable

import httpx
import pytest

from guestnama.auth import AuthSessionManager
from guestnama.gateway import RemoteGateway
from guestnama.hashing import hash_secret
from guestnama.models import UserPublic, UserRole
from guestnama.storage import MemoryStorage, SessionStore

BACKEND_URL = "http://backend.test/exec"

ADMIN_ID = "admin-001"
ADMIN_EMAIL = "admin@guestnama.com"
ADMIN_SECRET = "admin123"

COLLECTION_ACTIONS = {
    f"{verb}{name}": (collection, verb)
    for collection, names in (
        ("Guest", {"get": "Guests", "other": "Guest"}),
        ("Finance", {"get": "Finance", "other": "Finance"}),
        ("Task", {"get": "Tasks", "other": "Task"}),
    )
    for verb, name in (
        ("get", names["get"]),
        ("add", names["other"]),
        ("update", names["other"]),
        ("delete", names["other"]),
    )
}


class FakeBackend:
    """In-memory stand-in for the remote store."""

    def __init__(self) -> None:
        self.users: list[dict[str, Any]] = [
            {
                "id": ADMIN_ID,
                "email": ADMIN_EMAIL,
                "name": "System Administrator",
                "role": "ADMIN",
                "passwordHash": hash_secret(ADMIN_SECRET),
                "createdAt": "2024-01-01T00:00:00.000Z",
            }
        ]
        self.collections: dict[str, list[dict[str, Any]]] = {
            "Guest": [],
            "Finance": [],
            "Task": [],
        }
        self.calls: list[str] = []
        self.payloads: list[dict[str, Any]] = []
        self._failures: dict[str, list[str]] = {}
        self.hooks: dict[str, Callable[[], Any]] = {}

    # -- test controls --------------------------------------------------------

    def fail(self, action: str, kind: str = "transport", times: int = 1) -> None:
        """Make the next `times` calls of an action fail ("transport", "reject", "http500")."""
        self._failures.setdefault(action, []).extend([kind] * times)

    def count(self, action: str) -> int:
        return self.calls.count(action)

    def remove_user(self, user_id: str) -> None:
        self.users = [u for u in self.users if u["id"] != user_id]

    def seed(self, collection: str, *rows: dict[str, Any]) -> None:
        self.collections[collection].extend(rows)

    # -- transport ------------------------------------------------------------

    async def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        action = body["action"]
        payload = body.get("payload") or {}
        self.calls.append(action)
        self.payloads.append(payload)

        hook = self.hooks.get(action)
        if hook is not None:
            result = hook()
            if hasattr(result, "__await__"):
                await result

        pending = self._failures.get(action)
        if pending:
            kind = pending.pop(0)
            if kind == "transport":
                raise httpx.ConnectError("connection refused", request=request)
            if kind == "http500":
                return httpx.Response(500, text="Internal Server Error")
            return httpx.Response(200, json={"success": False, "error": f"{action} rejected"})

        try:
            data = self.dispatch(action, payload)
        except KeyError as e:
            return httpx.Response(200, json={"success": False, "error": f"Unknown: {e}"})
        return httpx.Response(200, json={"success": True, "data": data})

    def dispatch(self, action: str, payload: dict[str, Any]) -> Any:
        if action == "getUsers":
            return self.users
        if action == "signup":
            self.users.append(payload)
            return None
        if action == "verifySession":
            return any(u["id"] == payload["userId"] for u in self.users)

        if action in COLLECTION_ACTIONS:
            collection, verb = COLLECTION_ACTIONS[action]
            rows = self.collections[collection]
            if verb == "get":
                return rows
            if verb == "add":
                rows.append(payload)
            elif verb == "update":
                for row in rows:
                    if row["id"] == payload["id"]:
                        row.update(payload["updates"])
            elif verb == "delete":
                self.collections[collection] = [
                    r for r in rows
                    if r["id"] != payload["id"]
                    or (payload["role"] != "ADMIN" and r["userId"] != payload["userId"])
                ]
            return None

        if action == "updateGuestStatus":
            for row in self.collections["Guest"]:
                if row["id"] == payload["id"]:
                    row["rsvpStatus"] = payload["status"]
            return None

        raise KeyError(action)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def gateway(backend: FakeBackend) -> AsyncIterator[RemoteGateway]:
    async with RemoteGateway(url=BACKEND_URL, transport=httpx.MockTransport(backend.handle)) as gw:
        yield gw


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage, key="guestnama_session")


@pytest.fixture
async def auth(gateway: RemoteGateway, store: SessionStore) -> AsyncIterator[AuthSessionManager]:
    """Initialized manager with a heartbeat that never fires on its own during a test."""
    manager = AuthSessionManager(
        gateway,
        store,
        heartbeat_interval=3600,
        heartbeat_enabled=True,
        verify_on_restore=True,
    )
    await manager.init()
    yield manager
    await manager.teardown()


@pytest.fixture
def admin() -> UserPublic:
    return UserPublic(
        id=ADMIN_ID,
        name="System Administrator",
        email=ADMIN_EMAIL,
        role=UserRole.ADMIN,
        created_at="2024-01-01T00:00:00.000Z",
    )


@pytest.fixture
def alice() -> UserPublic:
    return UserPublic(id="user-a", name="Alice Ahmed", email="a@x.com", created_at="2024-02-01")


@pytest.fixture
def bob() -> UserPublic:
    return UserPublic(id="user-b", name="Bob Baig", email="b@x.com", created_at="2024-02-02")


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
