"""
GuestNama - CLI Entry Point

Command-line client for the GuestNama backend.

Usage:
    # Create an account (logs in immediately)
    guestnama signup --name "Ayesha Khan" --email ayesha@example.com

    # Log in / out
    guestnama login --email ayesha@example.com
    guestnama logout

    # Manage data
    guestnama guests add --name "John Doe" --email john@example.com
    guestnama tasks list

    # Keep the session alive and verified in the background
    guestnama watch
"""

import asyncio
import re
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Awaitable, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from guestnama.auth import AuthSessionManager
from guestnama.config import settings
from guestnama.gateway import RemoteError, RemoteGateway
from guestnama.log import setup_logging
from guestnama.models import (
    FinanceEntry,
    FinanceType,
    Guest,
    GuestGroup,
    RSVPStatus,
    Task,
    TaskPriority,
    UserPublic,
)
from guestnama.services import AccountService, FinanceService, GuestService, TaskService
from guestnama.stats import guest_statistics, load_dashboard
from guestnama.storage import FileStorage, SessionStore
from guestnama.sync import SyncedCollection

T = TypeVar("T")

app = typer.Typer(
    name="guestnama",
    help="Event guest management client for GuestNama",
    add_completion=False,
)
guests_app = typer.Typer(help="Manage the guest list")
finance_app = typer.Typer(help="Manage the finance ledger")
tasks_app = typer.Typer(help="Manage preparation tasks")
app.add_typer(guests_app, name="guests")
app.add_typer(finance_app, name="finance")
app.add_typer(tasks_app, name="tasks")

console = Console()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_SECRET_LENGTH = 6


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    setup_logging("DEBUG" if verbose else settings.log_level)


@asynccontextmanager
async def open_session(
    heartbeat: bool = False,
    interval: float | None = None,
) -> AsyncIterator[AuthSessionManager]:
    """Open the gateway and restore the saved session for this profile."""
    store = SessionStore(FileStorage(settings.storage_path), settings.session_key)
    async with RemoteGateway() as gateway:
        async with AuthSessionManager(
            gateway, store, heartbeat_enabled=heartbeat, heartbeat_interval=interval
        ) as auth:
            yield auth


def run(coro: Awaitable[T]) -> T:
    """Run a coroutine, turning backend failures into a clean exit."""
    try:
        return asyncio.run(coro)
    except RemoteError as e:
        console.print(f"[red]Connection error ({e.action}): {e.message}[/red]")
        console.print("[dim]Please try again.[/dim]")
        raise typer.Exit(1)


def require_user(auth: AuthSessionManager) -> UserPublic:
    if auth.user is None:
        console.print("[yellow]Not logged in.[/yellow] Run: guestnama login")
        raise typer.Exit(1)
    return auth.user


def print_user(user: UserPublic) -> None:
    console.print(Panel.fit(
        f"[bold]{user.name}[/bold]\n"
        f"[dim]{user.email}[/dim]\n"
        f"Role: {user.role.value}",
        border_style="blue",
    ))


def today() -> str:
    return date.today().isoformat()


# =============================================================================
# Session commands
# =============================================================================


@app.command()
def signup(
    name: str = typer.Option(..., "--name", "-n", prompt=True, help="Display name"),
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
    ),
) -> None:
    """Register a new account and log in."""
    if not EMAIL_RE.match(email):
        console.print("[red]A valid email is required.[/red]")
        raise typer.Exit(1)
    if len(password) < MIN_SECRET_LENGTH:
        console.print(f"[red]Password must be at least {MIN_SECRET_LENGTH} characters.[/red]")
        raise typer.Exit(1)

    async def run_signup() -> UserPublic | None:
        async with open_session() as auth:
            if auth.is_authenticated:
                auth.logout()
            if not await auth.signup(name, email, password):
                return None
            return auth.user

    user = run(run_signup())
    if user is None:
        console.print("[red]Email already registered.[/red]")
        raise typer.Exit(1)
    console.print("[green]Account created.[/green]")
    print_user(user)


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password"),
) -> None:
    """Log in, replacing any session saved on this device."""

    async def run_login() -> UserPublic | None:
        async with open_session() as auth:
            if auth.is_authenticated:
                auth.logout()
            if not await auth.login(email, password):
                return None
            return auth.user

    user = run(run_login())
    if user is None:
        console.print("[red]Invalid email or password combination.[/red]")
        raise typer.Exit(1)
    console.print("[green]Logged in.[/green]")
    print_user(user)


@app.command()
def logout() -> None:
    """Forget the session saved on this device."""
    SessionStore(FileStorage(settings.storage_path), settings.session_key).clear()
    console.print("[green]Logged out.[/green]")


@app.command()
def whoami() -> None:
    """Show the current (verified) session."""

    async def run_whoami() -> UserPublic:
        async with open_session() as auth:
            return require_user(auth)

    print_user(run(run_whoami()))


@app.command()
def verify() -> None:
    """Check once that the logged-in account still exists."""

    async def run_verify() -> bool | None:
        async with open_session() as auth:
            require_user(auth)
            return await auth.verify_now()

    result = run(run_verify())
    if result is True:
        console.print("[green]Session is valid.[/green]")
    elif result is False:
        console.print("[red]Account no longer exists. Logged out.[/red]")
        raise typer.Exit(1)
    else:
        console.print("[yellow]Could not verify the session right now.[/yellow]")


@app.command()
def watch(
    interval: float = typer.Option(
        settings.heartbeat_interval_seconds, "--interval", "-i",
        help="Seconds between background verifications",
    ),
) -> None:
    """
    Hold the session open and verify it periodically.

    Runs until interrupted, or until the backend reports the account gone.
    """

    async def run_watch() -> None:
        async with open_session(heartbeat=True, interval=interval) as auth:
            user = require_user(auth)
            ended = asyncio.Event()
            auth.subscribe(lambda s: ended.set() if not s.is_authenticated else None)
            console.print(f"[blue]Watching session for {user.email} (every {interval:.0f}s)[/blue]")
            await ended.wait()
            console.print("[red]Session ended by the backend.[/red]")

    try:
        run(run_watch())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped watching[/yellow]")
        raise typer.Exit(130)


@app.command()
def dashboard() -> None:
    """Show guest, finance and task totals."""

    async def run_dashboard():
        async with open_session() as auth:
            user = require_user(auth)
            gw = auth.gateway
            return await load_dashboard(GuestService(gw), FinanceService(gw), TaskService(gw), user)

    summary = run(run_dashboard())

    table = Table(title="Event Overview", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Guests", str(summary.guests_total))
    table.add_row("Confirmed", str(summary.guests_confirmed))
    table.add_row("Checked in", str(summary.guests_checked_in))
    table.add_row("Income", f"Rs. {summary.finance.income:,.0f}")
    table.add_row("Expenses", f"Rs. {summary.finance.expenses:,.0f}")
    table.add_row("Balance", f"Rs. {summary.finance.balance:,.0f}")
    table.add_row("Tasks done", f"{summary.tasks_completed}/{summary.tasks_total} ({summary.tasks_percentage}%)")
    console.print(table)

    if summary.open_tasks:
        console.print("[bold]Open tasks:[/bold]")
        for task in summary.open_tasks:
            console.print(f"  - {task.title} [dim]({task.priority.value}, due {task.due_date})[/dim]")


@app.command()
def users() -> None:
    """List registered accounts and guest statistics (admin)."""

    async def run_users():
        async with open_session() as auth:
            user = require_user(auth)
            accounts = await AccountService(auth.gateway).list_users(user)
            guests = await GuestService(auth.gateway).list(user)
            return accounts, guest_statistics(accounts, guests)

    accounts, stats = run(run_users())

    table = Table(title="Users")
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Joined", style="dim")
    for account in accounts:
        table.add_row(account.name, account.email, account.role.value, account.created_at[:10])
    console.print(table)

    console.print(f"[bold]Guests:[/bold] {stats.total_guests}")
    for status, count in stats.rsvp_counts.items():
        console.print(f"  {status.value}: {count}")


# =============================================================================
# Guests
# =============================================================================


@guests_app.command("list")
def guests_list(
    query: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name or email"),
) -> None:
    """List guests."""

    async def run_list() -> list[Guest]:
        async with open_session() as auth:
            user = require_user(auth)
            return await GuestService(auth.gateway).list(user)

    guests = run(run_list())
    if query:
        guests = GuestService.search(guests, query)

    if not guests:
        console.print("[yellow]No guests yet.[/yellow]")
        return

    table = Table(title="Guests")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("Group")
    table.add_column("RSVP")
    table.add_column("Checked in")
    table.add_column("Event date")
    for g in guests:
        table.add_row(
            g.id, g.name, g.email, g.group.value, g.rsvp_status.value,
            "yes" if g.checked_in else "-", g.event_date,
        )
    console.print(table)


@guests_app.command("add")
def guests_add(
    name: str = typer.Option(..., "--name", "-n", help="Guest name"),
    email: str = typer.Option(..., "--email", "-e", help="Guest email"),
    event_date: Optional[str] = typer.Option(None, "--date", "-d", help="Event date (YYYY-MM-DD)"),
    group: GuestGroup = typer.Option(GuestGroup.OTHER, "--group", "-g"),
    status: RSVPStatus = typer.Option(RSVPStatus.PENDING, "--status"),
) -> None:
    """Add a guest."""
    if not name.strip():
        console.print("[red]Name is required.[/red]")
        raise typer.Exit(1)
    if not EMAIL_RE.match(email):
        console.print("[red]A valid email is required.[/red]")
        raise typer.Exit(1)

    async def run_add() -> int:
        async with open_session() as auth:
            user = require_user(auth)
            guests = SyncedCollection(GuestService(auth.gateway), user)
            guest = Guest(
                user_id=user.id, name=name.strip(), email=email,
                event_date=event_date or today(), group=group, rsvp_status=status,
            )
            return len(await guests.add(guest))

    total = run(run_add())
    console.print(f"[green]Guest added.[/green] {total} guest(s) on the list.")


@guests_app.command("status")
def guests_status(
    guest_id: str = typer.Argument(..., help="Guest ID"),
    status: RSVPStatus = typer.Argument(..., help="New RSVP status"),
) -> None:
    """Set a guest's RSVP status."""

    async def run_status() -> None:
        async with open_session() as auth:
            require_user(auth)
            await GuestService(auth.gateway).update_status(guest_id, status)

    run(run_status())
    console.print(f"[green]Guest {guest_id} is now {status.value}.[/green]")


@guests_app.command("delete")
def guests_delete(guest_id: str = typer.Argument(..., help="Guest ID")) -> None:
    """Remove a guest."""

    async def run_delete() -> None:
        async with open_session() as auth:
            user = require_user(auth)
            await GuestService(auth.gateway).delete(guest_id, user)

    run(run_delete())
    console.print("[green]Guest removed.[/green]")


# =============================================================================
# Finance
# =============================================================================


@finance_app.command("list")
def finance_list() -> None:
    """List ledger entries with totals."""

    async def run_list() -> list[FinanceEntry]:
        async with open_session() as auth:
            user = require_user(auth)
            return await FinanceService(auth.gateway).list(user)

    entries = run(run_list())

    table = Table(title="Finance")
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Description")
    table.add_column("Category")
    table.add_column("Amount (Rs.)", justify="right")
    for e in entries:
        sign, style = ("+", "green") if e.type == FinanceType.INCOME else ("-", "red")
        table.add_row(e.id, e.date, e.description, e.category, f"[{style}]{sign}{e.amount:,.0f}[/{style}]")
    console.print(table)

    summary = FinanceService.summarize(entries)
    console.print(
        f"Income: Rs. {summary.income:,.0f} | "
        f"Expenses: Rs. {summary.expenses:,.0f} | "
        f"Balance: Rs. {summary.balance:,.0f}"
    )


@finance_app.command("add")
def finance_add(
    description: str = typer.Option(..., "--description", "-d"),
    amount: float = typer.Option(..., "--amount", "-a", min=0),
    entry_type: FinanceType = typer.Option(FinanceType.EXPENSE, "--type", "-t"),
    category: str = typer.Option("Catering", "--category", "-c"),
    entry_date: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD)"),
) -> None:
    """Record income or an expense."""

    async def run_add() -> None:
        async with open_session() as auth:
            user = require_user(auth)
            entry = FinanceEntry(
                user_id=user.id, description=description, amount=amount,
                type=entry_type, category=category, date=entry_date or today(),
            )
            await SyncedCollection(FinanceService(auth.gateway), user).add(entry)

    run(run_add())
    console.print("[green]Entry recorded.[/green]")


@finance_app.command("delete")
def finance_delete(entry_id: str = typer.Argument(..., help="Entry ID")) -> None:
    """Remove a ledger entry."""

    async def run_delete() -> None:
        async with open_session() as auth:
            user = require_user(auth)
            await FinanceService(auth.gateway).delete(entry_id, user)

    run(run_delete())
    console.print("[green]Entry removed.[/green]")


# =============================================================================
# Tasks
# =============================================================================


@tasks_app.command("list")
def tasks_list() -> None:
    """List tasks, open and high priority first."""

    async def run_list() -> list[Task]:
        async with open_session() as auth:
            user = require_user(auth)
            return await TaskService(auth.gateway).list(user)

    tasks = TaskService.sort_tasks(run(run_list()))

    table = Table(title="Tasks")
    table.add_column("ID", style="dim")
    table.add_column("Done")
    table.add_column("Task", style="green")
    table.add_column("Priority")
    table.add_column("Due")
    for t in tasks:
        table.add_row(t.id, "x" if t.is_completed else " ", t.title, t.priority.value, t.due_date)
    console.print(table)


@tasks_app.command("add")
def tasks_add(
    title: str = typer.Option(..., "--title", "-t"),
    priority: TaskPriority = typer.Option(TaskPriority.MEDIUM, "--priority", "-p"),
    due_date: Optional[str] = typer.Option(None, "--due", help="Due date (YYYY-MM-DD)"),
    description: str = typer.Option("", "--description", "-d"),
) -> None:
    """Add a task."""

    async def run_add() -> None:
        async with open_session() as auth:
            user = require_user(auth)
            task = Task(
                user_id=user.id, title=title, description=description,
                due_date=due_date or today(), priority=priority,
            )
            await SyncedCollection(TaskService(auth.gateway), user).add(task)

    run(run_add())
    console.print("[green]Task added.[/green]")


@tasks_app.command("toggle")
def tasks_toggle(task_id: str = typer.Argument(..., help="Task ID")) -> None:
    """Flip a task between open and done."""

    async def run_toggle() -> Task | None:
        async with open_session() as auth:
            user = require_user(auth)
            tasks = SyncedCollection(TaskService(auth.gateway), user)
            await tasks.refresh()
            task = tasks.get(task_id)
            if task is None:
                return None
            await tasks.apply_optimistic(task_id, {"is_completed": not task.is_completed})
            return tasks.get(task_id)

    task = run(run_toggle())
    if task is None:
        console.print(f"[red]No task with ID {task_id}.[/red]")
        raise typer.Exit(1)
    state = "done" if task.is_completed else "open"
    console.print(f"[green]{task.title} is now {state}.[/green]")


@tasks_app.command("delete")
def tasks_delete(task_id: str = typer.Argument(..., help="Task ID")) -> None:
    """Remove a task."""

    async def run_delete() -> None:
        async with open_session() as auth:
            user = require_user(auth)
            await TaskService(auth.gateway).delete(task_id, user)

    run(run_delete())
    console.print("[green]Task removed.[/green]")


if __name__ == "__main__":
    app()
