"""
Entity sync service base.

Typed CRUD over the remote gateway for one entity kind. Reads are scoped to
the caller on every call: ADMIN sees every row the backend returns, USER only
its own. Local copies are never authoritative; callers re-read after writes.
"""

from typing import Annotated, Any, Generic, TypeVar

from pydantic import TypeAdapter

from guestnama.actions import Action, DeletePayload, ListPayload, UpdatePayload
from guestnama.gateway import RemoteGateway
from guestnama.models import OwnedEntity, UserPublic

E = TypeVar("E", bound=OwnedEntity)

# Fields that identify an entity and cannot be changed by an update
IMMUTABLE_FIELDS = frozenset({"id", "user_id"})


def scope_to_owner(entities: list[E], owner: UserPublic) -> list[E]:
    """Restrict a fetched collection to what the owner may see."""
    if owner.is_admin:
        return list(entities)
    return [e for e in entities if e.user_id == owner.id]


class EntityService(Generic[E]):
    """CRUD pass-through for one entity kind."""

    model: type[E]
    list_action: Action
    add_action: Action
    update_action: Action
    delete_action: Action

    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway

    def wire_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        """
        Validate a partial update and render it with wire field names.

        Raises:
            ValueError: Unknown or immutable field
            pydantic.ValidationError: A value does not fit its field
        """
        model_fields = self.model.model_fields
        by_alias = {info.alias: name for name, info in model_fields.items() if info.alias}

        rendered: dict[str, Any] = {}
        for key, value in fields.items():
            name = key if key in model_fields else by_alias.get(key)
            if name is None or name in IMMUTABLE_FIELDS:
                raise ValueError(f"{self.model.__name__} has no updatable field {key!r}")
            info = model_fields[name]
            field_type = (
                Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
            )
            adapter = TypeAdapter(field_type)
            rendered[info.alias or name] = adapter.dump_python(
                adapter.validate_python(value), mode="json"
            )
        return rendered

    async def create(self, entity: E) -> None:
        await self.gateway.invoke(self.add_action, entity)

    async def update(self, entity_id: str, fields: dict[str, Any]) -> None:
        """Send a partial update for one entity."""
        payload = UpdatePayload(id=entity_id, updates=self.wire_fields(fields))
        await self.gateway.invoke(self.update_action, payload)

    async def delete(self, entity_id: str, owner: UserPublic) -> None:
        """Delete an entity; the backend only lets a USER delete its own rows."""
        payload = DeletePayload(id=entity_id, user_id=owner.id, role=owner.role)
        await self.gateway.invoke(self.delete_action, payload)

    # Defined last: the name shadows the builtin for the rest of the class body
    async def list(self, owner: UserPublic) -> list[E]:
        """Fetch the collection and scope it to the owner."""
        entities = await self.gateway.invoke(
            self.list_action, ListPayload(user_id=owner.id, role=owner.role)
        )
        return scope_to_owner(entities, owner)
