"""In-process record store.

Behaves like the remote store as far as the engine can tell: ids and
``createdAt`` are assigned on insert, every stream gets an initial
snapshot, and every change is broadcast to the owner's live streams.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from fleetview.models.vehicle import VehicleDraft
from fleetview.state.stream import SnapshotStream
from fleetview.store.base import new_record_id

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryRecordStore:
    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._streams: dict[str, list[SnapshotStream]] = {}
        self._last_created_at: datetime | None = None

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def subscribe(self, owner_id: str) -> SnapshotStream:
        stream = SnapshotStream(owner_id, on_close=self._detach)
        self._streams.setdefault(owner_id, []).append(stream)
        stream.publish(self.documents(owner_id))
        _logger.debug("Subscribed owner=%s (%d live stream(s))", owner_id, len(self._streams[owner_id]))
        return stream

    def unsubscribe(self, stream: SnapshotStream) -> None:
        stream.close()

    async def insert(self, owner_id: str, draft: VehicleDraft) -> str:
        document = draft.to_document()
        document["createdAt"] = self._next_created_at()
        record_id = new_record_id()
        self._collection(owner_id)[record_id] = document
        _logger.debug("Inserted vehicle id=%s owner=%s", record_id, owner_id)
        self._broadcast(owner_id)
        return record_id

    # ------------------------------------------------------------------
    # Changes made by "other clients"
    # ------------------------------------------------------------------

    def update(self, owner_id: str, record_id: str, patch: Mapping[str, Any]) -> None:
        """Overwrite fields (camelCase keys) of an existing document."""
        collection = self._collection(owner_id)
        if record_id not in collection:
            raise KeyError(record_id)
        collection[record_id].update(copy.deepcopy(dict(patch)))
        self._broadcast(owner_id)

    def delete(self, owner_id: str, record_id: str) -> None:
        self._collection(owner_id).pop(record_id)
        self._broadcast(owner_id)

    def put_document(self, owner_id: str, record_id: str, document: Any) -> None:
        """Store *document* as-is, without any shaping or validation."""
        self._collection(owner_id)[record_id] = copy.deepcopy(document)
        self._broadcast(owner_id)

    def documents(self, owner_id: str) -> list[Any]:
        """Current snapshot of *owner_id*'s collection."""
        snapshot: list[Any] = []
        for record_id, document in self._collections.get(owner_id, {}).items():
            if isinstance(document, dict):
                snapshot.append({"id": record_id, **copy.deepcopy(document)})
            else:
                snapshot.append(copy.deepcopy(document))
        return snapshot

    def live_streams(self, owner_id: str) -> int:
        return len(self._streams.get(owner_id, []))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collection(self, owner_id: str) -> dict[str, Any]:
        return self._collections.setdefault(owner_id, {})

    def _next_created_at(self) -> datetime:
        # Server timestamps never go backwards within one store.
        now = self._clock()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    def _broadcast(self, owner_id: str) -> None:
        streams = self._streams.get(owner_id, [])
        if not streams:
            return
        snapshot = self.documents(owner_id)
        for stream in list(streams):
            stream.publish(snapshot)

    def _detach(self, stream: SnapshotStream) -> None:
        streams = self._streams.get(stream.owner_id, [])
        if stream in streams:
            streams.remove(stream)
        _logger.debug("Released stream for owner=%s", stream.owner_id)
