#!/usr/bin/env python3
"""Watch a fleet collection and print the dashboard table on every change.

Examples::

    # Local demo: in-memory store loaded with the sample fleet
    python scripts/fleet_watch.py --memory --seed --once

    # Firestore, configured through FLEET_* environment variables
    FLEET_PROJECT_ID=my-project FLEET_AUTH_TOKEN=... \\
        python scripts/fleet_watch.py --owner <uid>
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetview import (  # noqa: E402
    FirestoreRecordStore,
    FleetConfig,
    FleetError,
    FleetView,
    FleetViewEngine,
    InMemoryRecordStore,
    StaticIdentityProvider,
)

_LOG = logging.getLogger("fleet_watch")


def _render(view: FleetView) -> str:
    stats = view.stats
    lines = [
        f"owner={view.owner_id or 'N/A'}  total={stats.total_vehicles}  active={stats.active_vehicles}  "
        f"due={stats.service_due}  avg_mileage={stats.avg_mileage:,}",
    ]
    for summary in view.summaries():
        record = summary.record
        lines.append(
            f"  {summary.status.value:<15} {record.display_name:<32} {record.vin:<18} "
            f"{record.mileage:>9,} mi  {summary.progress_percent:5.1f}%  {summary.remaining_label}"
        )
    if view.is_empty:
        lines.append("  (no vehicles)")
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, stop.set)

    def on_view_change(view: FleetView) -> None:
        if view.updated_at is not None:
            print(_render(view), flush=True)

    def on_error(error: FleetError) -> None:
        print(f"! {error}", file=sys.stderr, flush=True)

    config = FleetConfig.from_env()
    store_cm = contextlib.nullcontext(InMemoryRecordStore()) if args.memory else FirestoreRecordStore(config)
    identity = StaticIdentityProvider(args.owner) if args.owner else StaticIdentityProvider.anonymous()

    async with store_cm as store:
        async with FleetViewEngine(store, config=config, on_view_change=on_view_change, on_error=on_error) as engine:
            engine.bind_identity(identity)
            await engine.wait_ready(timeout=args.timeout)
            if args.seed:
                try:
                    await engine.seed()
                except FleetError:
                    return 1
                print("Sample data loaded successfully!", flush=True)
            if args.once:
                await asyncio.sleep(0.1)
                return 0 if engine.error is None else 1
            await stop.wait()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--owner", help="Owner id (default: random anonymous owner)")
    parser.add_argument("--memory", action="store_true", help="Use an in-memory store instead of Firestore")
    parser.add_argument("--seed", action="store_true", help="Load the sample fleet after connecting")
    parser.add_argument("--once", action="store_true", help="Exit after the first view (and seeding)")
    parser.add_argument("--timeout", type=float, default=15.0, help="Seconds to wait for the first snapshot")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
