"""Run a radio server: python -m aioturntable."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
from pathlib import Path

from aioturntable.config import RadioConfig
from aioturntable.server.server import RadioServer

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None, defaults: RadioConfig | None = None) -> RadioConfig:
    """Apply command line flags on top of the environment configuration."""
    defaults = defaults or RadioConfig.from_env()
    parser = argparse.ArgumentParser(
        prog="aioturntable", description="Shared radio station with synchronized playback."
    )
    parser.add_argument("--host", default=defaults.host, help="Address to bind to.")
    parser.add_argument("--port", type=int, default=defaults.port, help="Port to listen on.")
    parser.add_argument(
        "--data-dir", type=Path, default=defaults.data_dir, help="Directory for persisted state."
    )
    parser.add_argument(
        "--uploads-dir", type=Path, default=defaults.uploads_dir, help="Directory for uploads."
    )
    parser.add_argument(
        "--no-mdns",
        dest="mdns",
        action="store_false",
        default=defaults.mdns,
        help="Do not advertise the station via mDNS.",
    )
    parser.add_argument("--log-level", default=defaults.log_level, help="Logging level.")
    parser.add_argument("--server-id", default=defaults.server_id, help="mDNS server id.")
    args = parser.parse_args(argv)
    return dataclasses.replace(
        defaults,
        host=args.host,
        port=args.port,
        data_dir=args.data_dir,
        uploads_dir=args.uploads_dir,
        mdns=args.mdns,
        log_level=args.log_level.upper(),
        server_id=args.server_id,
    )


async def run(settings: RadioConfig) -> None:
    """Serve until cancelled."""
    server = RadioServer(
        asyncio.get_running_loop(),
        settings.effective_server_id,
        settings.data_dir,
        uploads_dir=settings.uploads_dir,
        max_upload_size=settings.max_upload_size,
    )
    await server.start_server(port=settings.port, host=settings.host, advertise_mdns=settings.mdns)
    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Shutting down")
        await server.close()


def main() -> None:
    """Entry point of the command line interface."""
    settings = parse_args()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
