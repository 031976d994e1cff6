"""
Entity sync services.

Typed CRUD wrappers over the remote gateway for guests, finance entries,
tasks and accounts.
"""

from guestnama.services.accounts import AccountService
from guestnama.services.base import EntityService, scope_to_owner
from guestnama.services.finance import FinanceService, FinanceSummary
from guestnama.services.guests import GuestService
from guestnama.services.tasks import TaskService

__all__ = [
    "AccountService",
    "EntityService",
    "FinanceService",
    "FinanceSummary",
    "GuestService",
    "TaskService",
    "scope_to_owner",
]
