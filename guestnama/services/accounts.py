"""Account directory (read-only)."""

from guestnama.actions import Action
from guestnama.gateway import RemoteGateway
from guestnama.models import Account, UserPublic


class AccountService:
    """Lists registered accounts without their credential digests."""

    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway

    async def list_users(self, requester: UserPublic) -> list[UserPublic]:
        """
        Return the accounts visible to the requester.

        ADMIN sees every account; USER sees only its own record.
        """
        accounts: list[Account] = await self.gateway.invoke(Action.GET_USERS)
        users = [a.to_public() for a in accounts]
        if requester.is_admin:
            return users
        return [u for u in users if u.id == requester.id]
