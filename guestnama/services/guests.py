"""Guest list synchronization."""

from guestnama.actions import Action, GuestStatusPayload
from guestnama.models import Guest, RSVPStatus
from guestnama.services.base import EntityService


class GuestService(EntityService[Guest]):
    """CRUD for guests, plus RSVP and check-in updates."""

    model = Guest
    list_action = Action.GET_GUESTS
    add_action = Action.ADD_GUEST
    update_action = Action.UPDATE_GUEST
    delete_action = Action.DELETE_GUEST

    async def update_status(self, guest_id: str, status: RSVPStatus | str) -> None:
        """Set a guest's RSVP status."""
        payload = GuestStatusPayload(id=guest_id, status=RSVPStatus(status))
        await self.gateway.invoke(Action.UPDATE_GUEST_STATUS, payload)

    async def check_in(self, guest_id: str, checked_in: bool = True) -> None:
        await self.update(guest_id, {"checked_in": checked_in})

    @staticmethod
    def search(guests: list[Guest], query: str) -> list[Guest]:
        """Case-insensitive match on name or email."""
        needle = query.strip().lower()
        if not needle:
            return list(guests)
        return [g for g in guests if needle in g.name.lower() or needle in g.email.lower()]
