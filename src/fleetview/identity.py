"""Owner identity providers."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from typing import Protocol

_logger = logging.getLogger(__name__)

OwnerListener = Callable[[str | None], None]


class IdentityProvider(Protocol):
    """Supplies the current owner id and announces changes to it."""

    def current_owner_id(self) -> str | None: ...

    def add_listener(self, callback: OwnerListener) -> Callable[[], None]:
        """Register *callback*; the returned callable removes it again."""
        ...


class StaticIdentityProvider:
    """Identity provider whose owner is set explicitly.

    Useful for scripts, tests and hosts that authenticate elsewhere.
    """

    def __init__(self, owner_id: str | None = None) -> None:
        self._owner_id = owner_id or None
        self._listeners: list[OwnerListener] = []

    @classmethod
    def anonymous(cls) -> StaticIdentityProvider:
        """Provider for a fresh random owner, as used for anonymous sign-in."""
        return cls(secrets.token_hex(14))

    def current_owner_id(self) -> str | None:
        return self._owner_id

    def set_owner(self, owner_id: str | None) -> None:
        """Announce *owner_id* to every listener.

        A signed-in owner is announced on every call, also when it did not
        change, so listeners can re-subscribe after a dropped connection.
        Sign-out (``None``) is announced only once.
        """
        owner_id = owner_id or None
        if owner_id is None and self._owner_id is None:
            return
        if owner_id != self._owner_id:
            _logger.debug("Owner changed from %s to %s", self._owner_id, owner_id)
        self._owner_id = owner_id
        for callback in list(self._listeners):
            callback(owner_id)

    def add_listener(self, callback: OwnerListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove
