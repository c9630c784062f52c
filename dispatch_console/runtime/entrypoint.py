from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

import httpx

from dispatch_console.core.domain.types import OrderFilter
from dispatch_console.core.events.event_bus import EventBus
from dispatch_console.core.events.sinks.file_recorder import FileRecorderSink
from dispatch_console.core.events.sinks.sink_logging import LoggingEventSink
from dispatch_console.gateway.errors import ConsoleError
from dispatch_console.gateway.order_gateway import OrderGateway
from dispatch_console.live.channel import LiveUpdateChannel
from dispatch_console.live.connection import PushConnection
from dispatch_console.live.websocket_transport import WebSocketPushTransport
from dispatch_console.runtime.config import ConsoleConfig, load_config, token_from_env
from dispatch_console.runtime.metrics import ConsoleMetrics
from dispatch_console.runtime.session import LoggingNotifier, StaticTokenSession
from dispatch_console.sync.coordinator import ViewStateCoordinator

LOGGER = logging.getLogger(__name__)

REQUEST_TIMEOUT_S = 30.0

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _order_filter(args: argparse.Namespace) -> OrderFilter:
    return OrderFilter(
        status=args.status,
        search=args.search,
        start_date=args.start_date,
        end_date=args.end_date,
    )


def _event_bus(cfg: ConsoleConfig) -> EventBus:
    bus = EventBus([LoggingEventSink(logging.getLogger("dispatch_console.events"))])
    if cfg.event_log_path is not None:
        bus.register(FileRecorderSink(cfg.event_log_path))
    return bus


def _client(cfg: ConsoleConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=cfg.api_base_url, timeout=REQUEST_TIMEOUT_S)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_export(cfg: ConsoleConfig, order_filter: OrderFilter, out: Path | None) -> Path:
    session = StaticTokenSession(token_from_env())
    metrics = ConsoleMetrics()
    async with _client(cfg) as client:
        gateway = OrderGateway(
            client,
            session,
            export_limit=cfg.export_limit,
            currency_token=cfg.currency_token,
            metrics=metrics,
        )
        payload = await gateway.export_orders(order_filter)

    out_path = out or Path(f"orders-export-{date.today().isoformat()}.csv")
    out_path.write_bytes(payload)
    LOGGER.info("Orders exported", extra={"path": str(out_path), "bytes": len(payload)})
    metrics.push_all(job="dispatch-console-export")
    return out_path


async def run_watch(cfg: ConsoleConfig, order_filter: OrderFilter) -> None:
    if not cfg.push_url:
        raise ConsoleError("push_url is not configured")

    session = StaticTokenSession(token_from_env())
    metrics = ConsoleMetrics()
    bus = _event_bus(cfg)
    connection = PushConnection()

    async with _client(cfg) as client:
        gateway = OrderGateway(
            client,
            session,
            export_limit=cfg.export_limit,
            currency_token=cfg.currency_token,
            metrics=metrics,
        )
        coordinator = ViewStateCoordinator(
            gateway,
            LoggingNotifier(),
            page_size=cfg.page_size,
            event_bus=bus,
            metrics=metrics,
            refresh_window=cfg.refresh_window_s,
        )
        channel = LiveUpdateChannel(connection, coordinator, metrics=metrics, event_bus=bus)
        transport = WebSocketPushTransport(
            cfg.push_url,
            connection,
            session,
            role=cfg.role,
            agency_id=cfg.agency_id,
        )

        await asyncio.gather(
            coordinator.load_page(order_filter, 1),
            coordinator.refresh_status_counts(order_filter),
        )
        LOGGER.info("Working set loaded", extra={"snapshot": coordinator.snapshot()})

        channel.attach()
        try:
            await transport.run()
        finally:
            channel.detach()
            connection.close()
            await transport.stop()
            await coordinator.close()
            bus.close()
            metrics.push_all(job="dispatch-console-watch")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Order dispatch console (export or live watch)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Root log level (DEBUG, INFO, WARNING, ...).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    def _common(cmd: argparse.ArgumentParser) -> None:
        cmd.add_argument(
            "--config",
            type=Path,
            required=True,
            help="Path to console JSON config.",
        )
        cmd.add_argument("--status", default=None, help="Status tab, e.g. pending or in-progress.")
        cmd.add_argument("--search", default=None, help="Free-text search.")
        cmd.add_argument("--start-date", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
        cmd.add_argument("--end-date", type=date.fromisoformat, default=None, help="YYYY-MM-DD")

    export = sub.add_parser("export", help="Export matching orders as CSV.")
    _common(export)
    export.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output CSV path (default: orders-export-<date>.csv).",
    )

    watch = sub.add_parser("watch", help="Load the working set and follow live updates.")
    _common(watch)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    order_filter = _order_filter(args)

    try:
        if args.command == "export":
            out_path = asyncio.run(run_export(cfg, order_filter, args.out))
            print(f"Wrote {out_path}")
        else:
            asyncio.run(run_watch(cfg, order_filter))
    except ConsoleError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
