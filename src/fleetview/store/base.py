"""Record store interface."""

from __future__ import annotations

import secrets
import string
from typing import Protocol

from fleetview._constants import RECORD_ID_LENGTH
from fleetview.models.vehicle import VehicleDraft
from fleetview.state.stream import SnapshotStream

_ID_ALPHABET = string.ascii_letters + string.digits


def new_record_id() -> str:
    """Random id in the style of Firestore auto-ids."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(RECORD_ID_LENGTH))


class RecordStore(Protocol):
    """Structural interface the engine consumes.

    Implementations deliver an initial snapshot (possibly empty) on every
    new stream and a fresh snapshot after any change to the collection.
    Insert failures are raised as :class:`~fleetview.exceptions.FleetError`
    subclasses.
    """

    def subscribe(self, owner_id: str) -> SnapshotStream: ...

    async def insert(self, owner_id: str, draft: VehicleDraft) -> str: ...

    def unsubscribe(self, stream: SnapshotStream) -> None: ...
