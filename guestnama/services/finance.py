"""Finance ledger synchronization."""

from dataclasses import dataclass

from guestnama.actions import Action
from guestnama.models import FinanceEntry, FinanceType
from guestnama.services.base import EntityService


@dataclass(frozen=True)
class FinanceSummary:
    """Totals over a set of ledger entries."""

    income: float = 0.0
    expenses: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expenses


class FinanceService(EntityService[FinanceEntry]):
    """CRUD for income and expense entries."""

    model = FinanceEntry
    list_action = Action.GET_FINANCE
    add_action = Action.ADD_FINANCE
    update_action = Action.UPDATE_FINANCE
    delete_action = Action.DELETE_FINANCE

    @staticmethod
    def summarize(entries: list[FinanceEntry]) -> FinanceSummary:
        income = sum(e.amount for e in entries if e.type == FinanceType.INCOME)
        expenses = sum(e.amount for e in entries if e.type == FinanceType.EXPENSE)
        return FinanceSummary(income=income, expenses=expenses)
