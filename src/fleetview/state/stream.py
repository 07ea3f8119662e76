"""Cancellable snapshot stream.

A :class:`SnapshotStream` is what a record store hands out for one
subscription. The store pushes whole snapshots into it; one consumer
iterates it with ``async for``.

Delivery rules:

* Only the newest undelivered snapshot is kept. A snapshot published
  before the consumer picked up the previous one replaces it.
* :meth:`SnapshotStream.fail` ends the stream with a
  :class:`~fleetview.exceptions.FleetConnectionError`.
* :meth:`SnapshotStream.close` is idempotent and ends the stream at once,
  dropping anything still pending. Publishes after close are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from fleetview.exceptions import FleetConnectionError

_logger = logging.getLogger(__name__)

Snapshot = list[Any]


class SnapshotStream:
    """Async iterator of snapshots for one owner's collection."""

    def __init__(
        self,
        owner_id: str,
        *,
        on_close: Callable[[SnapshotStream], None] | None = None,
    ) -> None:
        self.owner_id = owner_id
        self._on_close = on_close
        self._pending: Snapshot | None = None
        self._error: FleetConnectionError | None = None
        self._closed = False
        self._wakeup = asyncio.Event()
        self.delivered = 0
        self.superseded = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, documents: Iterable[Any]) -> bool:
        """Offer a snapshot. Returns ``False`` when the stream is closed."""
        if self._closed or self._error is not None:
            return False
        if self._pending is not None:
            self.superseded += 1
        self._pending = list(documents)
        self._wakeup.set()
        return True

    def fail(self, error: BaseException | str) -> None:
        """End the stream with a connection error."""
        if self._closed or self._error is not None:
            return
        if isinstance(error, FleetConnectionError):
            self._error = error
        else:
            self._error = FleetConnectionError(str(error))
            if isinstance(error, BaseException):
                self._error.__cause__ = error
        _logger.debug("Snapshot stream for owner=%s failed: %s", self.owner_id, self._error)
        self._wakeup.set()

    def close(self) -> None:
        """Release the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._pending = None
        self._wakeup.set()
        callback = self._on_close
        self._on_close = None
        if callback is not None:
            callback(self)

    def __aiter__(self) -> SnapshotStream:
        return self

    async def __anext__(self) -> Snapshot:
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._pending is not None:
                snapshot = self._pending
                self._pending = None
                self.delivered += 1
                return snapshot
            if self._error is not None:
                error = self._error
                self.close()
                raise error
            self._wakeup.clear()
            await self._wakeup.wait()
