"""
GuestNama domain models.

Pydantic models for accounts, sessions and the synced entities (guests,
finance entries, tasks). The backend speaks camelCase JSON; attributes are
snake_case and both spellings are accepted on input.
"""

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid4())


class WireModel(BaseModel):
    """Base for models exchanged with the backend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize to the backend's camelCase JSON shape."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Accounts
# =============================================================================


class UserRole(str, Enum):
    """Account roles."""

    ADMIN = "ADMIN"
    USER = "USER"


class UserPublic(WireModel):
    """An account with its credential digest stripped; safe to persist."""

    id: str
    name: str
    email: str
    role: UserRole = UserRole.USER
    created_at: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Account(UserPublic):
    """Full account record as held by the remote store."""

    password_hash: str

    def to_public(self) -> UserPublic:
        return UserPublic.model_validate(self.model_dump(exclude={"password_hash"}))


# =============================================================================
# Session
# =============================================================================


class Session(BaseModel):
    """Snapshot of who is logged in on this device."""

    model_config = ConfigDict(frozen=True)

    user: UserPublic | None = None
    is_authenticated: bool = False
    is_loading: bool = False

    @model_validator(mode="after")
    def _check_authenticated(self) -> "Session":
        if self.is_authenticated != (self.user is not None):
            raise ValueError("is_authenticated must be true exactly when a user is set")
        return self

    @classmethod
    def initializing(cls) -> "Session":
        return cls(user=None, is_authenticated=False, is_loading=True)

    @classmethod
    def anonymous(cls) -> "Session":
        return cls(user=None, is_authenticated=False, is_loading=False)

    @classmethod
    def authenticated(cls, user: UserPublic) -> "Session":
        return cls(user=user, is_authenticated=True, is_loading=False)


# =============================================================================
# Owned entities
# =============================================================================


class OwnedEntity(WireModel):
    """An entity belonging to one account."""

    id: str = Field(default_factory=new_id)
    user_id: str


class RSVPStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    DECLINED = "Declined"


class GuestGroup(str, Enum):
    FAMILY = "Family"
    FRIENDS = "Friends"
    COLLEAGUES = "Colleagues"
    OTHER = "Other"


class Guest(OwnedEntity):
    """An invited guest."""

    name: str
    email: str
    rsvp_status: RSVPStatus = RSVPStatus.PENDING
    checked_in: bool = False
    event_date: str
    group: GuestGroup = GuestGroup.OTHER


class FinanceType(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


class FinanceEntry(OwnedEntity):
    """A single ledger line."""

    description: str
    amount: float = Field(ge=0)
    type: FinanceType = FinanceType.EXPENSE
    category: str = "Catering"
    date: str


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Task(OwnedEntity):
    """A preparation task."""

    title: str
    description: str = ""
    due_date: str
    priority: TaskPriority = TaskPriority.MEDIUM
    is_completed: bool = False
