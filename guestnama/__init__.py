"""GuestNama client - session lifecycle and data sync for the GuestNama backend."""

from guestnama.actions import Action
from guestnama.auth import AuthSessionManager, AuthStatus, InvalidTransition
from guestnama.gateway import (
    GuestNamaError,
    RemoteError,
    RemoteGateway,
    RemoteRejected,
    TransportError,
)
from guestnama.hashing import hash_secret
from guestnama.models import (
    Account,
    FinanceEntry,
    Guest,
    Session,
    Task,
    UserPublic,
    UserRole,
)
from guestnama.storage import FileStorage, MemoryStorage, SessionStore
from guestnama.sync import SyncedCollection

__all__ = [
    "Account",
    "Action",
    "AuthSessionManager",
    "AuthStatus",
    "FileStorage",
    "FinanceEntry",
    "Guest",
    "GuestNamaError",
    "InvalidTransition",
    "MemoryStorage",
    "RemoteError",
    "RemoteGateway",
    "RemoteRejected",
    "Session",
    "SessionStore",
    "SyncedCollection",
    "Task",
    "TransportError",
    "UserPublic",
    "UserRole",
    "hash_secret",
]
