"""
Tests for dashboard and admin statistics.
"""

import pytest

from conftest import FakeBackend
from guestnama.gateway import RemoteGateway
from guestnama.models import Guest, RSVPStatus, UserPublic
from guestnama.services import FinanceService, GuestService, TaskService
from guestnama.stats import DashboardSummary, guest_statistics, load_dashboard


class TestLoadDashboard:
    """Tests for the per-owner dashboard."""

    @pytest.mark.asyncio
    async def test_summary(
        self, gateway: RemoteGateway, backend: FakeBackend, alice: UserPublic, bob: UserPublic
    ) -> None:
        """Test counts, totals and lists for one owner."""
        backend.seed(
            "Guest",
            {"id": "g1", "userId": alice.id, "name": "G1", "email": "g1@x.com",
             "rsvpStatus": "Confirmed", "checkedIn": True, "eventDate": "2024-12-25", "group": "Family"},
            {"id": "g2", "userId": alice.id, "name": "G2", "email": "g2@x.com",
             "rsvpStatus": "Pending", "checkedIn": False, "eventDate": "2024-12-25", "group": "Other"},
            {"id": "g3", "userId": bob.id, "name": "G3", "email": "g3@x.com",
             "rsvpStatus": "Confirmed", "checkedIn": True, "eventDate": "2024-12-25", "group": "Other"},
        )
        backend.seed(
            "Finance",
            {"id": "f1", "userId": alice.id, "description": "Gift", "amount": 1000,
             "type": "Income", "category": "Gifts", "date": "2024-01-01"},
            {"id": "f2", "userId": alice.id, "description": "Venue", "amount": 400,
             "type": "Expense", "category": "Venue", "date": "2024-01-02"},
        )
        backend.seed(
            "Task",
            {"id": "t1", "userId": alice.id, "title": "Cards", "dueDate": "2024-11-01",
             "priority": "High", "isCompleted": True},
            {"id": "t2", "userId": alice.id, "title": "Cake", "dueDate": "2024-12-20",
             "priority": "Low", "isCompleted": False},
            {"id": "t3", "userId": alice.id, "title": "Music", "dueDate": "2024-12-20",
             "priority": "Low", "isCompleted": False},
        )

        summary = await load_dashboard(
            GuestService(gateway), FinanceService(gateway), TaskService(gateway), alice
        )

        assert summary.guests_total == 2
        assert summary.guests_confirmed == 1
        assert summary.guests_checked_in == 1
        assert summary.finance.balance == 600
        assert summary.tasks_total == 3
        assert summary.tasks_completed == 1
        assert summary.tasks_percentage == 33
        assert [g.id for g in summary.recent_guests] == ["g2", "g1"]
        assert [t.id for t in summary.open_tasks] == ["t2", "t3"]
        assert sorted(backend.calls) == ["getFinance", "getGuests", "getTasks"]

    def test_empty_percentage(self) -> None:
        """Test no tasks means zero percent done."""
        assert DashboardSummary().tasks_percentage == 0

    def test_percentage_rounds_half_up(self) -> None:
        """Test a half percent rounds up."""
        assert DashboardSummary(tasks_total=8, tasks_completed=1).tasks_percentage == 13


class TestGuestStatistics:
    """Tests for the admin overview."""

    def test_counts_and_hosts(self, admin: UserPublic, alice: UserPublic, bob: UserPublic) -> None:
        """Test RSVP counts and hosts ranked by guest count."""
        guests = [
            Guest(user_id=bob.id, name="x", email="x@x.com", event_date="d", rsvp_status="Confirmed"),
            Guest(user_id=bob.id, name="y", email="y@x.com", event_date="d", rsvp_status="Declined"),
            Guest(user_id=alice.id, name="z", email="z@x.com", event_date="d"),
        ]

        stats = guest_statistics([admin, alice, bob], guests, top=2)

        assert stats.total_users == 3
        assert stats.total_guests == 3
        assert stats.rsvp_counts == {
            RSVPStatus.PENDING: 1,
            RSVPStatus.CONFIRMED: 1,
            RSVPStatus.DECLINED: 1,
        }
        assert stats.top_hosts == [("Bob", 2), ("Alice", 1)]
