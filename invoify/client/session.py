from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from .api_client import RemoteApiClient

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[dict]], Awaitable[None]]


class SessionBoundary:
    """Anonymous / authenticated state of the client.

    ``owner`` is the serialized user while authenticated and ``None`` while
    anonymous. Listeners are awaited after every transition so the active
    invoice backend can reload. Local invoices are never merged into the
    owner's remote set.
    """

    def __init__(self, api: RemoteApiClient) -> None:
        self._api = api
        self._owner: Optional[dict] = None
        self._listeners: list[SessionListener] = []

    @property
    def owner(self) -> Optional[dict]:
        return self._owner

    @property
    def is_authenticated(self) -> bool:
        return self._owner is not None

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def _transition(self, owner: Optional[dict]) -> None:
        previous = self._owner
        self._owner = owner
        if (previous or {}).get("id") == (owner or {}).get("id") and (previous is None) == (owner is None):
            return
        logger.info(
            "session.transition from=%s to=%s",
            (previous or {}).get("id", "anonymous"),
            (owner or {}).get("id", "anonymous"),
        )
        for listener in list(self._listeners):
            await listener(owner)

    async def restore(self) -> bool:
        user, _ = await self._api.me()
        await self._transition(user)
        return user is not None

    async def login(self, email: str, password: str) -> tuple[Optional[dict], str]:
        user, error = await self._api.login(email, password)
        if user is None:
            return None, error
        await self._transition(user)
        return user, ""

    async def signup(self, email: str, password: str, name: str = "") -> tuple[Optional[dict], str]:
        user, error = await self._api.signup(email, password, name)
        if user is None:
            return None, error
        await self._transition(user)
        return user, ""

    async def logout(self) -> None:
        _, error = await self._api.logout()
        if error:
            logger.warning("session.logout_failed error=%s", error)
        await self._transition(None)
