"""
Durable local storage and the persisted session record.

KeyValueStorage mirrors a browser's local storage: string keys, string
values, scoped to one profile. SessionStore keeps the logged-in UserPublic
under a single fixed key and heals itself when that entry is corrupt.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from guestnama.models import UserPublic

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """String key-value storage that survives restarts."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        """Remove the key. Removing an absent key is not an error."""

        ...


class MemoryStorage:
    """In-process storage, lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class FileStorage:
    """
    Storage backed by one JSON object file in a profile directory.

    The whole file is rewritten on every change through a temporary file and
    os.replace, so a crash never leaves a half-written file behind. A file
    that cannot be read as a JSON object is treated as empty.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, Any]:
        """Decoded file contents. Values other than strings are kept as stored."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable storage file %s", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: not a JSON object", self.path)
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        data = self._read()
        if key not in data:
            return None
        value = data[key]
        # Hand-edited entries come back as JSON text so readers can reject them
        return value if isinstance(value, str) else json.dumps(value)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class SessionStore:
    """Persisted record of the user logged in on this device."""

    def __init__(self, storage: KeyValueStorage, key: str = "guestnama_session") -> None:
        self.storage = storage
        self.key = key

    def load(self) -> UserPublic | None:
        """
        Return the persisted user, or None.

        A value that does not parse as a UserPublic is removed and treated as
        no session at all.
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            return None
        try:
            return UserPublic.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt session record under %r", self.key)
            self.storage.remove_item(self.key)
            return None

    def save(self, user: UserPublic) -> None:
        self.storage.set_item(self.key, user.model_dump_json(by_alias=True))

    def clear(self) -> None:
        self.storage.remove_item(self.key)
