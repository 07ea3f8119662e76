"""Fleet view engine.

Keeps one owner's live :class:`~fleetview.state.view.FleetView` in sync
with a record store, and forwards validated drafts to it.

Usage::

    async with FleetViewEngine(store) as engine:
        engine.set_owner("user-1")
        await engine.wait_ready()
        for summary in engine.view.summaries():
            ...
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from fleetview._constants import NOT_READY_MESSAGE
from fleetview.config import FleetConfig
from fleetview.exceptions import (
    FleetConnectionError,
    FleetDecodeError,
    FleetError,
    FleetInsertError,
)
from fleetview.identity import IdentityProvider
from fleetview.ingestion.snapshot import decode_snapshot
from fleetview.models.vehicle import VehicleDraft
from fleetview.samples import SAMPLE_VEHICLES
from fleetview.state.stream import SnapshotStream
from fleetview.state.view import FleetView
from fleetview.store.base import RecordStore
from fleetview.validation import validate_draft

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FleetViewEngine:
    """Reconciles store snapshots into an ordered, immutable view.

    Each call to :meth:`set_owner` starts a new subscription generation.
    Snapshots tagged with an older generation are dropped, so a
    superseded subscription can never overwrite a newer view.

    Errors are kept as a single collection-level :attr:`error` and passed
    to ``on_error``; none of them stop the engine.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        config: FleetConfig | None = None,
        on_view_change: Callable[[FleetView], None] | None = None,
        on_error: Callable[[FleetError], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._config = config or FleetConfig()
        self._on_view_change = on_view_change
        self._on_error = on_error
        self._clock = clock
        self._owner_id: str | None = None
        self._generation = 0
        self._view = FleetView.empty()
        self._error: FleetError | None = None
        self._stream: SnapshotStream | None = None
        self._task: asyncio.Task[None] | None = None
        self._ready = asyncio.Event()
        self._ready.set()
        self._unbind_identity: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetViewEngine:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the subscription and stop reacting to identity changes."""
        self.unbind_identity()
        task = self._teardown()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def view(self) -> FleetView:
        return self._view

    @property
    def error(self) -> FleetError | None:
        """Current collection-level error, if any."""
        return self._error

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        """Whether the current subscription has not delivered yet."""
        return not self._ready.is_set()

    async def wait_ready(self, timeout: float | None = 10.0) -> FleetView:
        """Wait for the current subscription's first snapshot or error."""
        await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        return self._view

    def clear_error(self) -> None:
        self._error = None

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    def set_owner(self, owner_id: str | None, *, force: bool = False) -> None:
        """Point the engine at *owner_id*'s collection.

        The previous subscription is released before the new one opens.
        Calling again for the current owner is a no-op while its stream is
        healthy, and re-subscribes after the stream dropped.
        Any collection-level error belongs to the old view and is cleared.
        """
        owner_id = owner_id or None
        healthy = self._stream is not None and not self._stream.closed
        if not force and owner_id == self._owner_id and (healthy or owner_id is None):
            return

        self._teardown()
        self._generation += 1
        generation = self._generation
        self._owner_id = owner_id
        self._ready.set()
        self._ready = asyncio.Event()
        self._error = None
        self._replace_view(FleetView.empty(owner_id, generation=generation))

        if owner_id is None:
            _logger.debug("Owner cleared, subscription closed (generation=%d)", generation)
            self._ready.set()
            return

        try:
            stream = self._store.subscribe(owner_id)
        except FleetError as exc:
            _logger.warning("Could not subscribe for owner=%s: %s", owner_id, exc)
            self._ready.set()
            error = FleetConnectionError("Real-time connection failed.")
            error.__cause__ = exc
            self._report_error(error)
            return

        self._stream = stream
        self._task = asyncio.get_running_loop().create_task(
            self._consume(stream, generation),
            name=f"fleetview-consume-{generation}",
        )
        _logger.debug("Subscribed owner=%s generation=%d", owner_id, generation)

    def reconnect(self) -> None:
        """Re-open the subscription for the current owner."""
        self.set_owner(self._owner_id, force=True)

    def bind_identity(self, provider: IdentityProvider) -> Callable[[], None]:
        """Follow *provider*: re-subscribe whenever its owner changes."""
        self.unbind_identity()
        self._unbind_identity = provider.add_listener(self.set_owner)
        self.set_owner(provider.current_owner_id())
        return self.unbind_identity

    def unbind_identity(self) -> None:
        unbind = self._unbind_identity
        self._unbind_identity = None
        if unbind is not None:
            unbind()

    def _teardown(self) -> asyncio.Task[None] | None:
        stream = self._stream
        self._stream = None
        if stream is not None:
            self._store.unsubscribe(stream)
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            return task
        return None

    async def _consume(self, stream: SnapshotStream, generation: int) -> None:
        try:
            async for documents in stream:
                if generation != self._generation:
                    _logger.debug("Dropping snapshot of superseded generation=%d", generation)
                    break
                self.apply_snapshot(documents, generation=generation)
        except FleetConnectionError as exc:
            if generation != self._generation:
                return
            _logger.warning("Subscription for owner=%s dropped: %s", stream.owner_id, exc)
            if self._stream is stream:
                self._stream = None
            self._ready.set()
            self._report_error(exc)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def apply_snapshot(
        self,
        documents: Iterable[Any],
        *,
        generation: int | None = None,
    ) -> FleetView | None:
        """Replace the view with one built from a full snapshot.

        Returns the new view, or ``None`` when the snapshot was stale or
        could not be decoded. In both cases the current view is kept.
        """
        if generation is not None and generation != self._generation:
            _logger.debug("Ignoring snapshot for generation=%d (current=%d)", generation, self._generation)
            return None

        try:
            records = decode_snapshot(documents)
        except FleetDecodeError as exc:
            _logger.warning("Rejected snapshot for owner=%s: %s", self._owner_id, exc)
            self._ready.set()
            self._report_error(exc)
            return None

        view = FleetView.build(
            records,
            owner_id=self._owner_id,
            generation=self._generation,
            updated_at=self._clock(),
        )
        if isinstance(self._error, (FleetDecodeError, FleetConnectionError)):
            self._error = None
        self._ready.set()
        self._replace_view(view)
        return view

    def _replace_view(self, view: FleetView) -> None:
        self._view = view
        if self._on_view_change is None:
            return
        try:
            self._on_view_change(view)
        except Exception:
            _logger.warning("on_view_change callback failed", exc_info=True)

    def _report_error(self, error: FleetError) -> None:
        self._error = error
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            _logger.warning("on_error callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def _require_owner(self) -> str:
        if self._owner_id is None:
            error = FleetConnectionError(NOT_READY_MESSAGE)
            self._report_error(error)
            raise error
        return self._owner_id

    async def add_vehicle(self, draft: VehicleDraft | Mapping[str, Any]) -> str:
        """Validate *draft* and insert it for the current owner.

        Validation errors are raised to the caller and leave the view and
        the collection-level error alone. The new record shows up through
        the subscription, not through this call.
        """
        owner_id = self._require_owner()
        accepted = validate_draft(draft, strict=self._config.strict_numeric)
        try:
            record_id = await self._store.insert(owner_id, accepted)
        except FleetError as exc:
            _logger.warning("Insert failed for owner=%s: %s", owner_id, exc)
            error = FleetInsertError("Failed to add vehicle to the fleet.")
            self._report_error(error)
            raise error from exc

        if isinstance(self._error, FleetInsertError):
            self._error = None
        _logger.debug("Added vehicle id=%s owner=%s", record_id, owner_id)
        return record_id

    async def seed(self, drafts: Iterable[VehicleDraft] | None = None) -> tuple[str, ...]:
        """Insert *drafts* (default: the sample fleet) one after another.

        Drafts are not validated. The first failed insert stops the batch;
        records inserted before it stay in place.
        """
        owner_id = self._require_owner()
        batch = SAMPLE_VEHICLES if drafts is None else tuple(drafts)
        inserted: list[str] = []
        for index, draft in enumerate(batch):
            try:
                inserted.append(await self._store.insert(owner_id, draft))
            except FleetError as exc:
                _logger.warning(
                    "Seeding stopped at item %d/%d for owner=%s: %s",
                    index + 1,
                    len(batch),
                    owner_id,
                    exc,
                )
                error = FleetInsertError(
                    "Failed to load sample data.",
                    index=index,
                    inserted_ids=tuple(inserted),
                )
                self._report_error(error)
                raise error from exc

        _logger.info("Loaded %d sample vehicle(s) for owner=%s", len(inserted), owner_id)
        return tuple(inserted)
