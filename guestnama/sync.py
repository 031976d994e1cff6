"""
Synced Collections

Local cache of one entity list that is kept consistent with the backend by
re-reading after every write. Responses to concurrent requests may arrive in
any order, so the collection never merges write results into its items;
the last refresh wins.

Optimistic updates are two-phase:
    1. apply the change to the local items so the caller can show it
    2. send the write; on failure throw the local copy away and re-read
"""

import logging
from typing import Any, Generic

from guestnama.gateway import RemoteError
from guestnama.models import UserPublic
from guestnama.services.base import E, EntityService

logger = logging.getLogger(__name__)


class SyncedCollection(Generic[E]):
    """
    Cached, owner-scoped view of one entity collection.

    Usage:
        guests = SyncedCollection(GuestService(gateway), auth.user)
        await guests.refresh()
        await guests.apply_optimistic(guest_id, {"checked_in": True})
    """

    def __init__(self, service: EntityService[E], owner: UserPublic) -> None:
        self.service = service
        self.owner = owner
        self._items: tuple[E, ...] = ()
        self._loaded = False

    @property
    def items(self) -> tuple[E, ...]:
        return self._items

    @property
    def loaded(self) -> bool:
        """Whether at least one refresh has completed."""
        return self._loaded

    def get(self, entity_id: str) -> E | None:
        return next((e for e in self._items if e.id == entity_id), None)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    async def refresh(self) -> tuple[E, ...]:
        """Replace the local items with the backend's current state."""
        self._items = tuple(await self.service.list(self.owner))
        self._loaded = True
        return self._items

    async def add(self, entity: E) -> tuple[E, ...]:
        await self.service.create(entity)
        return await self.refresh()

    async def update(self, entity_id: str, fields: dict[str, Any]) -> tuple[E, ...]:
        await self.service.update(entity_id, fields)
        return await self.refresh()

    async def remove(self, entity_id: str) -> tuple[E, ...]:
        await self.service.delete(entity_id, self.owner)
        return await self.refresh()

    def _apply_locally(self, entity_id: str, wire_fields: dict[str, Any]) -> None:
        patched = []
        for entity in self._items:
            if entity.id == entity_id:
                entity = type(entity).model_validate({**entity.to_wire(), **wire_fields})
            patched.append(entity)
        self._items = tuple(patched)

    async def apply_optimistic(self, entity_id: str, fields: dict[str, Any]) -> tuple[E, ...]:
        """
        Show an update locally before the backend confirms it.

        Raises:
            RemoteError: The write failed; the items were re-read before raising
        """
        # Validation errors surface before local state changes
        self._apply_locally(entity_id, self.service.wire_fields(fields))

        try:
            await self.service.update(entity_id, fields)
        except RemoteError:
            logger.warning("Optimistic update of %s failed, restoring canonical state", entity_id)
            try:
                await self.refresh()
            except RemoteError:
                logger.warning("Re-read after failed update of %s also failed", entity_id)
                self._items = ()
                self._loaded = False
            raise

        return await self.refresh()
