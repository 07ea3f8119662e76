"""Snapshot decoding.

Stores deliver snapshots as lists of plain documents (``id`` plus the
camelCase record fields). This module turns one such list into typed
records, or rejects the whole snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from fleetview.exceptions import FleetDecodeError
from fleetview.models.vehicle import VehicleRecord

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MalformedDocument:
    """Placeholder a store publishes for a document it could not read."""

    document_id: str | None
    reason: str


def decode_document(document: Any) -> VehicleRecord:
    """Decode one store document into a :class:`VehicleRecord`."""
    if isinstance(document, MalformedDocument):
        raise FleetDecodeError(
            f"Malformed vehicle document {document.document_id!r}: {document.reason}",
            document_id=document.document_id,
        )
    if not isinstance(document, Mapping):
        raise FleetDecodeError(f"Document is not an object: {type(document).__name__}")
    doc_id = document.get("id")
    try:
        return VehicleRecord.model_validate(dict(document))
    except ValidationError as exc:
        raise FleetDecodeError(
            f"Malformed vehicle document {doc_id!r}: {exc.error_count()} invalid field(s)",
            document_id=str(doc_id) if doc_id is not None else None,
        ) from exc


def decode_snapshot(documents: Iterable[Any]) -> list[VehicleRecord]:
    """Decode a full snapshot.

    A single malformed document or a duplicated id fails the whole
    snapshot so the caller can keep its last good view.
    """
    records: list[VehicleRecord] = []
    seen: set[str] = set()
    for document in documents:
        record = decode_document(document)
        if record.id in seen:
            raise FleetDecodeError(f"Duplicate vehicle id {record.id!r} in snapshot", document_id=record.id)
        seen.add(record.id)
        records.append(record)
    _logger.debug("Decoded snapshot with %d vehicle(s)", len(records))
    return records
