"""
Presence Stream Watcher
=======================

Command-line entry point that subscribes to one stream and logs
everything it publishes.

This script:
    1. Loads settings (config.yaml + environment) and configures logging
    2. Connects to the chosen stream
    3. Logs every notification and a metrics report at a fixed interval
    4. Disconnects cleanly on SIGINT / SIGTERM or after --duration

Usage:
    python -m presence_stream --stream players
    python -m presence_stream --stream announcements --duration 600
    presence-stream --config ./config.yaml --report-interval 30
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from typing import List, Optional

from presence_stream.api import create_announcement_stream, create_player_event_stream
from presence_stream.config import Settings, load_config, setup_logging
from presence_stream.ratelimit import RateLimitClock
from presence_stream.stream.client import StreamClient


logger = logging.getLogger(__name__)


STREAMS = {
    "players": create_player_event_stream,
    "announcements": create_announcement_stream,
}


def _attach_logging(client: StreamClient) -> None:
    """Log every notification the client publishes."""
    client.on_connected.subscribe(lambda c: logger.info(f"Stream connected: {c.url}"))
    client.on_disconnected.subscribe(lambda c: logger.info(f"Stream disconnected: {c.url}"))
    client.on_heartbeat.subscribe(lambda c: logger.debug("Heartbeat"))
    client.on_message.subscribe(lambda c, record: logger.info(f"Event: {record!r}"))
    client.on_error.subscribe(
        lambda c, error: logger.warning(
            f"Stream error: {error} (next attempt in {c.current_reconnect_delay:.1f}s)"
        )
    )


async def run(
    settings: Settings,
    stream: str,
    duration: Optional[float],
    report_interval: float,
) -> dict:
    """
    Watch a stream until stopped.

    Args:
        settings: Loaded settings
        stream: Stream name (key of STREAMS)
        duration: Seconds to run, None = until signalled
        report_interval: Seconds between metrics reports

    Returns:
        Final metrics dict
    """
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    client = STREAMS[stream](settings, rate_limit=RateLimitClock())
    _attach_logging(client)

    start_time = time.monotonic()
    try:
        async with client:
            while not stop_event.is_set():
                elapsed = time.monotonic() - start_time
                if duration is not None and elapsed >= duration:
                    logger.info(f"Duration ({duration:.0f}s) reached")
                    break
                timeout = report_interval
                if duration is not None:
                    timeout = min(timeout, duration - elapsed)
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    metrics = client.metrics
                    logger.info(
                        f"State: {client.state.value} | "
                        f"messages: {metrics.messages_received} | "
                        f"heartbeats: {metrics.heartbeats_received} | "
                        f"malformed: {metrics.malformed_frames} | "
                        f"reconnects: {metrics.reconnect_count}"
                    )
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    total_time = time.monotonic() - start_time
    result = {"duration": total_time, **client.metrics.to_dict()}

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    for name, value in result.items():
        logger.info(f"{name}: {value:.1f}" if isinstance(value, float) else f"{name}: {value}")
    logger.info("=" * 60)

    return result


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="presence-stream",
        description="Subscribe to a presence service stream and log its events",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: search working directory)",
    )
    parser.add_argument(
        "--stream",
        choices=sorted(STREAMS),
        default="players",
        help="Stream to watch (default: players)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Seconds to run before exiting (default: until interrupted)",
    )
    parser.add_argument(
        "--report-interval",
        type=float,
        default=60.0,
        help="Seconds between metrics reports (default: 60)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    settings = load_config(args.config)
    setup_logging(settings)

    result = asyncio.run(run(
        settings=settings,
        stream=args.stream,
        duration=args.duration,
        report_interval=args.report_interval,
    ))

    # Non-zero if we never managed to connect
    return 0 if result["connections"] > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
