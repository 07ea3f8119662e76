from __future__ import annotations

import asyncio
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

import pytest

from fleetview.config import FleetConfig, MqttSettings
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
from fleetview.state.engine import FleetViewEngine
from fleetview.store import firestore
from fleetview.store.firestore import FirestoreRecordStore

_DB = "projects/demo/databases/(default)"
_COLLECTION = f"{_DB}/documents/artifacts/default-app-id/users/user-1/vehicles"


def _firestore_doc(record_id: str, model: str, mileage: int, update_time: str = "t1") -> dict[str, Any]:
    return {
        "name": f"{_COLLECTION}/{record_id}",
        "updateTime": update_time,
        "fields": {
            "make": {"stringValue": "Make"},
            "model": {"stringValue": model},
            "vin": {"stringValue": f"VIN{record_id}"},
            "mileage": {"integerValue": str(mileage)},
            "nextServiceMileage": {"integerValue": "1000"},
            "fuelType": {"stringValue": "Diesel"},
            "status": {"stringValue": "Active"},
        },
    }


@dataclass
class FakeTransport:
    """Serves a paginated collection and records every call."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    calls: list[tuple[str, str, dict[str, Any], Any]] = field(default_factory=list)
    fail_with: FleetTransportError | None = None
    fail_commit: bool = False

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        params = dict(params or {})
        self.calls.append((method, path, params, body))
        if self.fail_with is not None:
            raise self.fail_with
        if method == "POST":
            if self.fail_commit:
                raise FleetTransportError("HTTP 403 from commit", status_code=403, endpoint=path)
            return {"commitTime": "2024-05-01T10:00:00Z"}

        size = int(params["pageSize"])
        start = int(params.get("pageToken") or 0)
        page = self.documents[start : start + size]
        reply: dict[str, Any] = {}
        if page:
            reply["documents"] = page
        if start + size < len(self.documents):
            reply["nextPageToken"] = str(start + size)
        return reply


def _store(transport: FakeTransport, **overrides: Any) -> FirestoreRecordStore:
    options: dict[str, Any] = {"project_id": "demo", "poll_interval": 0.01, "page_size": 2}
    options.update(overrides)
    return FirestoreRecordStore(FleetConfig(**options), transport=transport)


def test_requires_project_id() -> None:
    with pytest.raises(FleetConfigError):
        FirestoreRecordStore(FleetConfig())


@pytest.mark.asyncio
async def test_operations_require_context_manager() -> None:
    store = FirestoreRecordStore(FleetConfig(project_id="demo"))
    with pytest.raises(FleetError, match="not initialized"):
        await store.read_collection("user-1")


@pytest.mark.asyncio
async def test_read_collection_follows_pages() -> None:
    transport = FakeTransport(documents=[_firestore_doc(str(i), f"M{i}", i) for i in range(5)])
    async with _store(transport) as store:
        documents, signature = await store.read_collection("user-1")

    assert [doc["id"] for doc in documents] == ["0", "1", "2", "3", "4"]
    assert documents[3]["mileage"] == 3
    assert len(signature) == 5
    assert [call[2].get("pageToken") for call in transport.calls] == [None, "2", "4"]
    assert all(call[1] == _COLLECTION for call in transport.calls)


@pytest.mark.asyncio
async def test_unreadable_document_becomes_placeholder() -> None:
    broken = _firestore_doc("bad", "X", 1)
    broken["fields"]["mileage"] = {"integerValue": "lots"}
    transport = FakeTransport(documents=[_firestore_doc("ok", "Y", 1), broken])
    async with _store(transport) as store:
        documents, _ = await store.read_collection("user-1")

    assert documents[0]["id"] == "ok"
    assert isinstance(documents[1], MalformedDocument)
    assert documents[1].document_id == "bad"


@pytest.mark.asyncio
async def test_insert_commits_with_server_timestamp() -> None:
    transport = FakeTransport()
    async with _store(transport) as store:
        record_id = await store.insert("user-1", VehicleDraft(make="Ford", model="Transit", vin="V1", mileage=10))

    method, path, _params, body = transport.calls[-1]
    assert method == "POST"
    assert path == f"{_DB}/documents:commit"
    (write,) = body["writes"]
    assert write["update"]["name"] == f"{_COLLECTION}/{record_id}"
    assert write["update"]["fields"]["mileage"] == {"integerValue": "10"}
    assert write["update"]["fields"]["nextServiceMileage"] == {"integerValue": "5000"}
    assert "year" not in write["update"]["fields"]
    assert write["currentDocument"] == {"exists": False}
    assert write["updateTransforms"] == [{"fieldPath": "createdAt", "setToServerValue": "REQUEST_TIME"}]


@pytest.mark.asyncio
async def test_insert_failure_is_an_insert_error() -> None:
    transport = FakeTransport(fail_commit=True)
    async with _store(transport) as store:
        with pytest.raises(FleetInsertError) as excinfo:
            await store.insert("user-1", VehicleDraft(make="A", model="B", vin="C"))

    assert isinstance(excinfo.value.__cause__, FleetTransportError)


@pytest.mark.asyncio
async def test_poller_publishes_only_on_change() -> None:
    transport = FakeTransport(documents=[_firestore_doc("a", "A", 1)])
    async with _store(transport) as store:
        stream = store.subscribe("user-1")

        first = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        assert [doc["id"] for doc in first] == ["a"]

        await asyncio.sleep(0.05)
        assert stream.delivered == 1
        assert stream.superseded == 0

        transport.documents.append(_firestore_doc("b", "B", 2))
        second = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        assert [doc["id"] for doc in second] == ["a", "b"]

        store.unsubscribe(stream)
        assert stream.closed


@pytest.mark.asyncio
async def test_rejected_read_fails_the_stream() -> None:
    transport = FakeTransport(fail_with=FleetTransportError("HTTP 401", status_code=401, endpoint="x"))
    async with _store(transport) as store:
        stream = store.subscribe("user-1")

        with pytest.raises(FleetConnectionError) as excinfo:
            await asyncio.wait_for(stream.__anext__(), timeout=1.0)

    assert isinstance(excinfo.value.__cause__, FleetTransportError)
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_transient_failures_are_retried_up_to_the_limit() -> None:
    transport = FakeTransport(fail_with=FleetTransportError("HTTP 503", status_code=503, endpoint="x"))
    async with _store(transport, poll_failure_limit=3) as store:
        stream = store.subscribe("user-1")

        with pytest.raises(FleetConnectionError):
            await asyncio.wait_for(stream.__anext__(), timeout=1.0)

    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_engine_over_firestore_sees_its_own_insert() -> None:
    transport = FakeTransport()
    async with _store(transport, poll_interval=30.0) as store:
        async with FleetViewEngine(store) as engine:
            engine.set_owner("user-1")
            await engine.wait_ready(timeout=1.0)
            assert engine.view.is_empty

            record_id = await engine.add_vehicle({"make": "A", "model": "B", "vin": "C"})
            # Stand in for the server applying the commit.
            transport.documents.append(_firestore_doc(record_id, "B", 0, update_time="t2"))

            for _ in range(50):
                if not engine.view.is_empty:
                    break
                await asyncio.sleep(0.01)

            assert engine.view.get(record_id) is not None


@pytest.mark.asyncio
async def test_non_object_entries_surface_as_decode_errors() -> None:
    transport = FakeTransport(documents=[_firestore_doc("a", "Tacoma", 10), "garbage"])  # type: ignore[list-item]
    async with _store(transport) as store:
        documents, _ = await store.read_collection("user-1")
        assert isinstance(documents[1], MalformedDocument)

        async with FleetViewEngine(store) as engine:
            engine.set_owner("user-1")
            await engine.wait_ready(timeout=1.0)

            assert not engine.is_loading
            assert isinstance(engine.error, FleetDecodeError)
            assert engine.view.is_empty


@pytest.mark.asyncio
async def test_unexpected_poller_failure_ends_the_stream(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = FakeTransport()
    async with _store(transport) as store:

        async def explode(owner_id: str) -> Any:
            raise RuntimeError("boom")

        monkeypatch.setattr(store, "read_collection", explode)
        stream = store.subscribe("user-1")

        with pytest.raises(FleetConnectionError) as excinfo:
            await asyncio.wait_for(stream.__anext__(), timeout=1.0)

    assert isinstance(excinfo.value.__cause__, RuntimeError)


@dataclass
class RecordingRuntime:
    """Stands in for the paho runtime and records which thread ran it."""

    loop: asyncio.AbstractEventLoop
    settings: Any
    on_notification: Any
    started_on: int | None = None
    stopped_on: int | None = None
    topic: str | None = None

    instances: ClassVar[list[RecordingRuntime]] = []

    def __post_init__(self) -> None:
        RecordingRuntime.instances.append(self)

    def start(self, topic: str) -> None:
        self.started_on = threading.get_ident()
        self.topic = topic

    def stop(self) -> None:
        self.stopped_on = threading.get_ident()


@pytest.mark.asyncio
async def test_mqtt_runtime_runs_off_the_event_loop(monkeypatch: pytest.MonkeyPatch) -> None:
    RecordingRuntime.instances.clear()
    monkeypatch.setattr(firestore, "FleetMqttRuntime", RecordingRuntime)
    transport = FakeTransport(documents=[_firestore_doc("a", "A", 1)])
    store = _store(
        transport,
        poll_interval=30.0,
        mqtt_enabled=True,
        mqtt=MqttSettings(host="broker.local"),
    )
    loop_thread = threading.get_ident()

    async with store:
        stream = store.subscribe("user-1")
        assert RecordingRuntime.instances == []

        await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        for _ in range(50):
            if RecordingRuntime.instances and RecordingRuntime.instances[0].started_on is not None:
                break
            await asyncio.sleep(0.01)

        (runtime,) = RecordingRuntime.instances
        assert runtime.topic == "fleet/default-app-id/users/user-1/vehicles"
        assert runtime.started_on not in (None, loop_thread)

        reads = len(transport.calls)
        transport.documents.append(_firestore_doc("b", "B", 2))
        runtime.on_notification(runtime.topic)
        second = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        assert len(transport.calls) > reads
        assert [doc["id"] for doc in second] == ["a", "b"]

    assert runtime.stopped_on not in (None, loop_thread)
