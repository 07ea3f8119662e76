"""Record store adapters."""

from fleetview.store.base import RecordStore, new_record_id
from fleetview.store.firestore import FirestoreRecordStore
from fleetview.store.memory import InMemoryRecordStore

__all__ = [
    "FirestoreRecordStore",
    "InMemoryRecordStore",
    "RecordStore",
    "new_record_id",
]
