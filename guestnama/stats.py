"""
Dashboard and admin statistics.

Pure aggregation over synced collections; nothing here is cached.
"""

import asyncio
import math
from collections import Counter
from dataclasses import dataclass, field

from guestnama.models import Guest, RSVPStatus, Task, UserPublic
from guestnama.services import FinanceService, FinanceSummary, GuestService, TaskService


@dataclass
class DashboardSummary:
    """Overview of one owner's event data."""

    guests_total: int = 0
    guests_confirmed: int = 0
    guests_checked_in: int = 0
    finance: FinanceSummary = field(default_factory=FinanceSummary)
    tasks_total: int = 0
    tasks_completed: int = 0
    recent_guests: list[Guest] = field(default_factory=list)
    open_tasks: list[Task] = field(default_factory=list)

    @property
    def tasks_percentage(self) -> int:
        if not self.tasks_total:
            return 0
        # Halves round up
        return math.floor(self.tasks_completed / self.tasks_total * 100 + 0.5)


@dataclass
class GuestStatistics:
    """Admin view over all guests."""

    total_users: int
    total_guests: int
    rsvp_counts: dict[RSVPStatus, int]
    top_hosts: list[tuple[str, int]]


async def load_dashboard(
    guests: GuestService,
    finance: FinanceService,
    tasks: TaskService,
    owner: UserPublic,
    limit: int = 5,
) -> DashboardSummary:
    """Fetch the three collections concurrently and summarize them."""
    guest_list, entries, task_list = await asyncio.gather(
        guests.list(owner),
        finance.list(owner),
        tasks.list(owner),
    )

    completed = sum(1 for t in task_list if t.is_completed)
    return DashboardSummary(
        guests_total=len(guest_list),
        guests_confirmed=sum(1 for g in guest_list if g.rsvp_status == RSVPStatus.CONFIRMED),
        guests_checked_in=sum(1 for g in guest_list if g.checked_in),
        finance=FinanceService.summarize(entries),
        tasks_total=len(task_list),
        tasks_completed=completed,
        recent_guests=list(reversed(guest_list))[:limit],
        open_tasks=[t for t in task_list if not t.is_completed][:limit],
    )


def guest_statistics(users: list[UserPublic], guests: list[Guest], top: int = 5) -> GuestStatistics:
    """RSVP breakdown and the hosts with the most guests."""
    rsvp = Counter(g.rsvp_status for g in guests)
    per_user = Counter(g.user_id for g in guests)

    hosts = [
        ((u.name.split() or [u.name])[0], per_user.get(u.id, 0))
        for u in users
    ]
    hosts.sort(key=lambda h: h[1], reverse=True)

    return GuestStatistics(
        total_users=len(users),
        total_guests=len(guests),
        rsvp_counts={status: rsvp.get(status, 0) for status in RSVPStatus},
        top_hosts=hosts[:top],
    )
