"""Firestore REST record store.

Reads an owner's collection with paginated ``list`` calls and inserts
through ``documents:commit`` so ``createdAt`` gets the server's request
time. Live updates come from polling; when MQTT notifications are
enabled, a notification triggers an immediate re-read.

Usage::

    async with FirestoreRecordStore(FleetConfig.from_env()) as store:
        async with FleetViewEngine(store) as engine:
            engine.set_owner(owner_id)
            ...
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from fleetview._mqtt import FleetMqttRuntime
from fleetview._transport import RestTransport, Transport
from fleetview.config import FleetConfig
from fleetview.exceptions import (
    FleetConfigError,
    FleetConnectionError,
    FleetDecodeError,
    FleetError,
    FleetInsertError,
    FleetTransportError,
)
from fleetview.ingestion.snapshot import MalformedDocument
from fleetview.models.vehicle import VehicleDraft
from fleetview.state.stream import SnapshotStream
from fleetview.store._firestore_values import decode_fields, document_id, encode_fields
from fleetview.store.base import new_record_id

_logger = logging.getLogger(__name__)


@dataclass
class _Poller:
    """Background reader feeding one stream."""

    stream: SnapshotStream
    wake: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task[None] | None = None
    mqtt: FleetMqttRuntime | None = None


def _is_fatal(exc: FleetTransportError) -> bool:
    """Client errors other than rate limiting will not heal by retrying."""
    return exc.status_code is not None and 400 <= exc.status_code < 500 and exc.status_code != 429


class FirestoreRecordStore:
    """Record store backed by the Firestore REST API."""

    def __init__(
        self,
        config: FleetConfig,
        *,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not config.project_id:
            raise FleetConfigError("FirestoreRecordStore requires config.project_id")
        self._config = config
        self._transport = transport
        self._external_session = session is not None
        self._http_session = session
        self._pollers: dict[int, _Poller] = {}
        self._database = f"projects/{config.project_id}/databases/(default)"

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FirestoreRecordStore:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = RestTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        tasks = [poller.task for poller in self._pollers.values() if poller.task is not None]
        for poller in list(self._pollers.values()):
            poller.stream.close()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise FleetError("Store not initialized. Use 'async with FirestoreRecordStore(...) as store:'")
        return self._transport

    def _collection(self, owner_id: str) -> str:
        return f"{self._database}/documents/{self._config.collection_path(owner_id)}"

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def subscribe(self, owner_id: str) -> SnapshotStream:
        self._require_transport()
        loop = asyncio.get_running_loop()
        stream = SnapshotStream(owner_id, on_close=self._release)
        poller = _Poller(stream=stream)
        self._pollers[id(stream)] = poller
        poller.task = loop.create_task(self._poll(poller), name=f"fleetview-poll-{owner_id}")
        return stream

    def unsubscribe(self, stream: SnapshotStream) -> None:
        stream.close()

    async def insert(self, owner_id: str, draft: VehicleDraft) -> str:
        transport = self._require_transport()
        record_id = new_record_id()
        fields = encode_fields(draft.to_document())
        body = {
            "writes": [
                {
                    "update": {"name": f"{self._collection(owner_id)}/{record_id}", "fields": fields},
                    "currentDocument": {"exists": False},
                    "updateTransforms": [{"fieldPath": "createdAt", "setToServerValue": "REQUEST_TIME"}],
                }
            ]
        }
        try:
            await transport.request_json("POST", f"{self._database}/documents:commit", body=body)
        except FleetTransportError as exc:
            raise FleetInsertError(f"Insert for owner {owner_id} failed: {exc}") from exc

        _logger.debug("Inserted vehicle id=%s owner=%s", record_id, owner_id)
        self._wake_owner(owner_id)
        return record_id

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def read_collection(self, owner_id: str) -> tuple[list[Any], tuple[tuple[str, str], ...]]:
        """Read every document of *owner_id*'s collection.

        Returns the plain documents and a change signature made of
        (name, updateTime) pairs.
        """
        transport = self._require_transport()
        documents: list[Any] = []
        signature: list[tuple[str, str]] = []
        page_token: str | None = None
        while True:
            response = await transport.request_json(
                "GET",
                self._collection(owner_id),
                params={"pageSize": self._config.page_size, "pageToken": page_token},
            )
            for raw in response.get("documents") or []:
                if isinstance(raw, Mapping):
                    signature.append((str(raw.get("name", "")), str(raw.get("updateTime", ""))))
                else:
                    signature.append(("", repr(raw)))
                documents.append(self._to_document(raw))
            page_token = response.get("nextPageToken") or None
            if page_token is None:
                break
        return documents, tuple(sorted(signature))

    @staticmethod
    def _to_document(raw: Any) -> Any:
        if not isinstance(raw, Mapping):
            return MalformedDocument(document_id=None, reason=f"not an object: {type(raw).__name__}")
        record_id = document_id(str(raw.get("name", ""))) or None
        fields = raw.get("fields", {})
        if not isinstance(fields, Mapping):
            return MalformedDocument(document_id=record_id, reason="fields is not an object")
        try:
            plain = decode_fields(fields)
        except FleetDecodeError as exc:
            return MalformedDocument(document_id=record_id, reason=str(exc))
        plain["id"] = record_id
        return plain

    async def _poll(self, poller: _Poller) -> None:
        stream = poller.stream
        try:
            await self._poll_loop(poller)
        except Exception as exc:
            _logger.exception("Poller for owner=%s crashed", stream.owner_id)
            error = FleetConnectionError("Real-time connection failed.")
            error.__cause__ = exc
            stream.fail(error)
        finally:
            await self._stop_notifications(poller)

    async def _poll_loop(self, poller: _Poller) -> None:
        stream = poller.stream
        owner_id = stream.owner_id
        failures = 0
        last_signature: tuple[tuple[str, str], ...] | None = None
        notifications_pending = self._config.mqtt_enabled and bool(self._config.mqtt.host)
        while not stream.closed:
            poller.wake.clear()
            try:
                documents, signature = await self.read_collection(owner_id)
            except FleetTransportError as exc:
                failures += 1
                if _is_fatal(exc) or failures >= self._config.poll_failure_limit:
                    _logger.warning("Giving up on owner=%s after %d failed read(s): %s", owner_id, failures, exc)
                    error = FleetConnectionError("Real-time connection failed.")
                    error.__cause__ = exc
                    stream.fail(error)
                    return
                _logger.warning("Read %d for owner=%s failed: %s", failures, owner_id, exc)
            else:
                failures = 0
                if signature != last_signature:
                    last_signature = signature
                    stream.publish(documents)
                    _logger.debug("Published %d document(s) for owner=%s", len(documents), owner_id)

            # First snapshot goes out before the broker connect.
            if notifications_pending:
                notifications_pending = False
                await self._start_notifications(poller)

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(poller.wake.wait(), timeout=self._config.poll_interval)

    async def _start_notifications(self, poller: _Poller) -> None:
        loop = asyncio.get_running_loop()
        owner_id = poller.stream.owner_id
        runtime = FleetMqttRuntime(
            loop=loop,
            settings=self._config.mqtt,
            on_notification=lambda _topic: poller.wake.set(),
        )
        poller.mqtt = runtime
        try:
            await loop.run_in_executor(None, runtime.start, self._config.mqtt_topic(owner_id))
        except Exception:
            _logger.warning("MQTT notifications unavailable for owner=%s, polling only", owner_id, exc_info=True)
            poller.mqtt = None

    async def _stop_notifications(self, poller: _Poller) -> None:
        runtime = poller.mqtt
        poller.mqtt = None
        if runtime is None:
            return
        try:
            await asyncio.get_running_loop().run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("MQTT runtime stop failed", exc_info=True)

    def _wake_owner(self, owner_id: str) -> None:
        for poller in self._pollers.values():
            if poller.stream.owner_id == owner_id:
                poller.wake.set()

    def _release(self, stream: SnapshotStream) -> None:
        poller = self._pollers.pop(id(stream), None)
        if poller is None:
            return
        if poller.task is not None and not poller.task.done() and poller.task is not asyncio.current_task():
            poller.task.cancel()
        _logger.debug("Released stream for owner=%s", stream.owner_id)
