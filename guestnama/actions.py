"""
Remote actions.

The backend exposes a single endpoint and dispatches on an action name. The
set of actions the client uses is closed: each one is bound to a payload
model and a response type, so a mismatched payload fails validation before
anything goes over the wire.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, TypeAdapter

from guestnama.models import (
    Account,
    FinanceEntry,
    Guest,
    RSVPStatus,
    Task,
    UserRole,
    WireModel,
)


class Action(str, Enum):
    """Remote procedure names understood by the backend."""

    GET_USERS = "getUsers"
    SIGNUP = "signup"
    VERIFY_SESSION = "verifySession"

    GET_GUESTS = "getGuests"
    ADD_GUEST = "addGuest"
    UPDATE_GUEST = "updateGuest"
    UPDATE_GUEST_STATUS = "updateGuestStatus"
    DELETE_GUEST = "deleteGuest"

    GET_FINANCE = "getFinance"
    ADD_FINANCE = "addFinance"
    UPDATE_FINANCE = "updateFinance"
    DELETE_FINANCE = "deleteFinance"

    GET_TASKS = "getTasks"
    ADD_TASK = "addTask"
    UPDATE_TASK = "updateTask"
    DELETE_TASK = "deleteTask"


# =============================================================================
# Payloads
# =============================================================================


class EmptyPayload(WireModel):
    """Payload for actions that take no arguments."""


class VerifySessionPayload(WireModel):
    user_id: str


class ListPayload(WireModel):
    """Owner hint sent with list actions; results are still filtered locally."""

    user_id: str
    role: UserRole


class UpdatePayload(WireModel):
    id: str
    updates: dict[str, Any]


class GuestStatusPayload(WireModel):
    id: str
    status: RSVPStatus


class DeletePayload(WireModel):
    id: str
    user_id: str
    role: UserRole


# =============================================================================
# Action table
# =============================================================================


@dataclass(frozen=True)
class ActionSignature:
    """Payload model and response type of one action."""

    payload: type[WireModel]
    response: TypeAdapter


_ANY = TypeAdapter(Any)

SIGNATURES: dict[Action, ActionSignature] = {
    Action.GET_USERS: ActionSignature(EmptyPayload, TypeAdapter(list[Account])),
    Action.SIGNUP: ActionSignature(Account, _ANY),
    Action.VERIFY_SESSION: ActionSignature(VerifySessionPayload, TypeAdapter(bool)),
    Action.GET_GUESTS: ActionSignature(ListPayload, TypeAdapter(list[Guest])),
    Action.ADD_GUEST: ActionSignature(Guest, _ANY),
    Action.UPDATE_GUEST: ActionSignature(UpdatePayload, _ANY),
    Action.UPDATE_GUEST_STATUS: ActionSignature(GuestStatusPayload, _ANY),
    Action.DELETE_GUEST: ActionSignature(DeletePayload, _ANY),
    Action.GET_FINANCE: ActionSignature(ListPayload, TypeAdapter(list[FinanceEntry])),
    Action.ADD_FINANCE: ActionSignature(FinanceEntry, _ANY),
    Action.UPDATE_FINANCE: ActionSignature(UpdatePayload, _ANY),
    Action.DELETE_FINANCE: ActionSignature(DeletePayload, _ANY),
    Action.GET_TASKS: ActionSignature(ListPayload, TypeAdapter(list[Task])),
    Action.ADD_TASK: ActionSignature(Task, _ANY),
    Action.UPDATE_TASK: ActionSignature(UpdatePayload, _ANY),
    Action.DELETE_TASK: ActionSignature(DeletePayload, _ANY),
}


def build_payload(action: Action, payload: BaseModel | dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Validate a payload for an action and render its wire form.

    Args:
        action: The remote action
        payload: An instance of the action's payload model, or a dict of
                 its fields (snake_case or camelCase)

    Returns:
        JSON-ready payload dict

    Raises:
        TypeError: If a model of the wrong type is supplied
        pydantic.ValidationError: If the fields do not fit the payload model
    """
    model_cls = SIGNATURES[action].payload
    if payload is None:
        payload = {}
    if isinstance(payload, BaseModel):
        if not isinstance(payload, model_cls):
            raise TypeError(
                f"{action.value} expects {model_cls.__name__}, got {type(payload).__name__}"
            )
        return payload.to_wire()
    return model_cls.model_validate(payload).to_wire()


def parse_response(action: Action, data: Any) -> Any:
    """Validate response data against the action's response type."""
    return SIGNATURES[action].response.validate_python(data)
