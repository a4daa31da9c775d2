# gateway/modules/auth/session_observer.py

"""
Observable store for "who is signed in".

The store is built per request by the dependency layer and handed to
whatever needs it (dispatcher, guard, routes). It is the only writer of the
observed user; everyone else reads snapshots or subscribes.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from gateway.core.identity import AuthEvent, IdentityProvider, UserIdentity

logger = logging.getLogger(__name__)


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: Optional[UserIdentity] = None
    loading: bool = True


SnapshotListener = Callable[[SessionSnapshot], None]


class SessionObserver:
    def __init__(self, identity: IdentityProvider):
        self.identity = identity
        self._snapshot = SessionSnapshot()
        self._listeners: List[SnapshotListener] = []
        self._unlisten: Optional[Callable[[], None]] = None
        self._checked = False

    # ------------------------------------------------------------------
    # Store API
    # ------------------------------------------------------------------
    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def user(self) -> Optional[UserIdentity]:
        return self._snapshot.user

    @property
    def loading(self) -> bool:
        return self._snapshot.loading

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def activate(self) -> None:
        """
        Listen for sign-in/sign-out events, then seed the store with one
        eager current-user check. The listener only sees future
        transitions, hence the check.
        """
        if self._unlisten is None:
            self._unlisten = self.identity.events.listen(self._on_auth_event)

        if not self._checked:
            self._checked = True
            await self._check_current_user()

    def deactivate(self) -> None:
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None

    @asynccontextmanager
    async def observe(self) -> AsyncIterator["SessionObserver"]:
        try:
            await self.activate()
            yield self
        finally:
            self.deactivate()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _on_auth_event(self, event: AuthEvent) -> None:
        if event.kind == "signed_in":
            self._update(user=event.user)
        elif event.kind == "signed_out":
            self._update(user=None)

    async def _check_current_user(self) -> None:
        try:
            user = await self.identity.get_current_user()
        except Exception as e:
            # No session, an expired one, or an unreachable provider all
            # mean "nobody is signed in" here.
            logger.debug("No current user: %s", e)
            user = None
        self._update(user=user, loading=False)

    def _update(self, **changes) -> None:
        snapshot = self._snapshot.model_copy(update=changes)
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
