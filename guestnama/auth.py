"""
Auth Session Manager

Owns the client's session state machine:

    INITIALIZING -> AUTHENTICATED | ANONYMOUS
    ANONYMOUS    -> AUTHENTICATED   (login, signup)
    AUTHENTICATED -> ANONYMOUS      (logout, failed verification)

Switching users always goes through ANONYMOUS.

While authenticated, an APScheduler interval job re-validates the account
against the backend. Transport failures during that heartbeat are logged and
ignored; only a confirmed "account not found" ends the session.

Every transition to ANONYMOUS bumps a session epoch. Operations that await
the network capture the epoch first and refuse to commit when it moved, so a
slow login can never resurrect a session the user already logged out of.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from guestnama.actions import Action
from guestnama.config import settings
from guestnama.gateway import GuestNamaError, RemoteError, RemoteGateway
from guestnama.hashing import hash_secret, is_digest
from guestnama.models import Account, Session, UserPublic, UserRole, new_id
from guestnama.storage import SessionStore

logger = logging.getLogger(__name__)

HEARTBEAT_JOB_ID = "session_heartbeat"

SessionListener = Callable[[Session], None]


class AuthStatus(str, Enum):
    """States of the session machine."""

    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class InvalidTransition(GuestNamaError):
    """An operation is not allowed in the current session state."""

    def __init__(self, operation: str, status: AuthStatus):
        self.operation = operation
        self.status = status
        super().__init__(f"Cannot {operation} while {status.value}")


class AuthSessionManager:
    """
    Session context for one device profile.

    Usage:
        async with AuthSessionManager(gateway, store) as auth:
            if not auth.is_authenticated:
                await auth.login(email, secret)

    Instances are independent: each owns its scheduler and state.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        store: SessionStore,
        *,
        heartbeat_interval: float | None = None,
        heartbeat_enabled: bool | None = None,
        verify_on_restore: bool | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            gateway: Open gateway used for all remote calls
            store: Persisted session record
            heartbeat_interval: Seconds between background verifications.
                                Defaults to settings.heartbeat_interval_seconds.
            heartbeat_enabled: Run the background verification at all.
            verify_on_restore: Verify a restored session with the backend
                               before trusting it.
            scheduler: Scheduler to run the heartbeat on (a private one by default)
        """
        self.gateway = gateway
        self.store = store
        self.heartbeat_interval = heartbeat_interval or settings.heartbeat_interval_seconds
        self.heartbeat_enabled = (
            settings.heartbeat_enabled if heartbeat_enabled is None else heartbeat_enabled
        )
        self.verify_on_restore = (
            settings.verify_on_restore if verify_on_restore is None else verify_on_restore
        )
        self.scheduler = scheduler or AsyncIOScheduler()

        self._session = Session.initializing()
        self._epoch = 0
        self._initialized = False
        self._verifying = False
        self._listeners: list[SessionListener] = []

    async def __aenter__(self) -> "AuthSessionManager":
        await self.init()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.teardown()

    # -------------------------------------------------------------------------
    # Observable state
    # -------------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> UserPublic | None:
        return self._session.user

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._session.is_loading

    @property
    def status(self) -> AuthStatus:
        if self._session.is_loading:
            return AuthStatus.INITIALIZING
        if self._session.is_authenticated:
            return AuthStatus.AUTHENTICATED
        return AuthStatus.ANONYMOUS

    @property
    def heartbeat_scheduled(self) -> bool:
        """Whether the background verification job is currently registered."""
        return self.scheduler.get_job(HEARTBEAT_JOB_ID) is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Call listener with the new Session after every transition.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, new_session: Session) -> None:
        if new_session == self._session:
            return
        old_status = self.status
        self._session = new_session
        logger.info("Session %s -> %s", old_status.value, self.status.value)

        if new_session.is_authenticated:
            self._schedule_heartbeat()
        else:
            self._cancel_heartbeat()

        for listener in list(self._listeners):
            try:
                listener(new_session)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def init(self) -> Session:
        """
        Restore a saved session, then start the heartbeat scheduler.

        Runs once; later calls return the current session unchanged.
        """
        if self._initialized:
            return self._session
        self._initialized = True

        await self._restore()

        if self.heartbeat_enabled and not self.scheduler.running:
            self.scheduler.start()
            # Restore may already have authenticated before the scheduler ran
            if self._session.is_authenticated:
                self._schedule_heartbeat()
        return self._session

    async def teardown(self) -> None:
        """Stop the heartbeat and the scheduler. Session and storage are left as they are."""
        self._cancel_heartbeat()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # Let the loop run the shutdown the scheduler queued
            await asyncio.sleep(0)

    async def _restore(self) -> None:
        epoch = self._epoch
        user = self.store.load()

        if user is None:
            self._transition(Session.anonymous())
            return

        if not self.verify_on_restore:
            self._transition(Session.authenticated(user))
            return

        try:
            valid = await self._verify(user)
        except RemoteError as e:
            logger.warning("Could not verify saved session for %s: %s", user.email, e)
            valid = False

        if epoch != self._epoch or self.status != AuthStatus.INITIALIZING:
            logger.debug("Session changed during restore, discarding restore result")
            return

        if valid:
            self._transition(Session.authenticated(user))
        else:
            logger.warning("Saved session for %s is no longer valid", user.email)
            self.store.clear()
            self._transition(Session.anonymous())

    # -------------------------------------------------------------------------
    # User operations
    # -------------------------------------------------------------------------

    def _require_anonymous(self, operation: str) -> None:
        if self.status != AuthStatus.ANONYMOUS:
            raise InvalidTransition(operation, self.status)

    def _digest(self, secret: str, prehashed: bool) -> str:
        if not prehashed:
            return hash_secret(secret)
        if not is_digest(secret):
            raise ValueError("Pre-hashed secret is not a SHA-256 hex digest")
        return secret

    def _commit(self, user: UserPublic, epoch: int, operation: str) -> bool:
        """Persist and authenticate, unless the session moved on while we awaited the backend."""
        if epoch != self._epoch or self.status != AuthStatus.ANONYMOUS:
            logger.warning("Discarding stale %s for %s", operation, user.email)
            return False
        self.store.save(user)
        self._transition(Session.authenticated(user))
        return True

    async def login(self, email: str, secret: str, *, prehashed: bool = False) -> bool:
        """
        Log in with email and secret.

        Args:
            email: Account email, matched exactly
            secret: Plaintext secret, or its digest when prehashed is set
            prehashed: The caller already hashed the secret

        Returns:
            True if logged in; False for unknown credentials or a login
            overtaken by another session change

        Raises:
            InvalidTransition: Not in the ANONYMOUS state
            RemoteError: The account list could not be fetched
        """
        self._require_anonymous("login")
        epoch = self._epoch
        digest = self._digest(secret, prehashed)

        accounts: list[Account] = await self.gateway.invoke(Action.GET_USERS)
        match = next(
            (a for a in accounts if a.email == email and a.password_hash == digest),
            None,
        )
        if match is None:
            logger.info("Login rejected for %s", email)
            return False

        return self._commit(match.to_public(), epoch, "login")

    async def signup(self, name: str, email: str, secret: str, *, prehashed: bool = False) -> bool:
        """
        Register a new USER account and log in as it.

        Returns:
            True if registered; False if the email is already taken or the
            session changed while registering

        Raises:
            InvalidTransition: Not in the ANONYMOUS state
            RemoteError: The backend could not be reached or refused the account
        """
        self._require_anonymous("signup")
        epoch = self._epoch
        digest = self._digest(secret, prehashed)

        accounts: list[Account] = await self.gateway.invoke(Action.GET_USERS)
        if any(a.email == email for a in accounts):
            logger.info("Signup rejected, email already registered: %s", email)
            return False

        account = Account(
            id=new_id(),
            name=name,
            email=email,
            role=UserRole.USER,
            created_at=datetime.now(timezone.utc).isoformat(),
            password_hash=digest,
        )
        await self.gateway.invoke(Action.SIGNUP, account)
        logger.info("Registered account %s", email)

        return self._commit(account.to_public(), epoch, "signup")

    def logout(self) -> None:
        """End the session. Safe to call in any state."""
        self._epoch += 1
        self.store.clear()
        self._transition(Session.anonymous())

    # -------------------------------------------------------------------------
    # Heartbeat
    # -------------------------------------------------------------------------

    async def _verify(self, user: UserPublic) -> bool:
        return await self.gateway.invoke(Action.VERIFY_SESSION, {"user_id": user.id})

    def _schedule_heartbeat(self) -> None:
        if not self.heartbeat_enabled or not self.scheduler.running:
            return
        self.scheduler.add_job(
            self.verify_now,
            trigger=IntervalTrigger(seconds=self.heartbeat_interval),
            id=HEARTBEAT_JOB_ID,
            name="Session heartbeat",
            replace_existing=True,
            max_instances=1,  # Never pile up verifications
            coalesce=True,
        )
        logger.debug("Heartbeat scheduled every %.0fs", self.heartbeat_interval)

    def _cancel_heartbeat(self) -> None:
        if self.scheduler.get_job(HEARTBEAT_JOB_ID) is not None:
            self.scheduler.remove_job(HEARTBEAT_JOB_ID)
            logger.debug("Heartbeat cancelled")

    async def verify_now(self) -> bool | None:
        """
        Re-validate the current account once.

        Returns:
            True if the account still exists, False if it was gone and the
            session was ended, None if nothing was decided (not logged in,
            a verification already in flight, a transport failure, or the
            session changed meanwhile)
        """
        user = self._session.user
        if user is None:
            return None
        if self._verifying:
            logger.debug("Verification already in flight, skipping")
            return None

        epoch = self._epoch
        self._verifying = True
        try:
            valid = await self._verify(user)
        except RemoteError as e:
            logger.warning("Session heartbeat failed, keeping session: %s", e)
            return None
        finally:
            self._verifying = False

        current = self._session.user
        if epoch != self._epoch or current is None or current.id != user.id:
            logger.debug("Discarding heartbeat result for an ended session")
            return None

        if not valid:
            logger.warning("Account %s no longer exists, logging out", user.email)
            self.logout()
            return False
        return True
