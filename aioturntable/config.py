"""Runtime configuration of the radio server, read from the environment."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from pathlib import Path

from decouple import config

from aioturntable.server.server import DEFAULT_HOST, DEFAULT_PORT
from aioturntable.storage.media import MAX_UPLOAD_SIZE

DEFAULT_DATA_DIR = Path.cwd()
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class RadioConfig:
    """Settings used by the command line entry point."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    data_dir: Path = DEFAULT_DATA_DIR
    """Directory holding playlists/main.json and playlists/station.json."""
    uploads_dir: Path | None = None
    """Directory for uploaded audio, data_dir/uploads if None."""
    max_upload_size: int = MAX_UPLOAD_SIZE
    """Maximum size of one uploaded file in bytes."""
    mdns: bool = True
    """Whether to advertise the station on the local network."""
    log_level: str = DEFAULT_LOG_LEVEL
    server_id: str = ""
    """Identifier used for mDNS, the host name if empty."""

    @classmethod
    def from_env(cls) -> RadioConfig:
        """Build the configuration from TURNTABLE_* environment variables or a .env file."""
        uploads_dir = config("TURNTABLE_UPLOADS_DIR", default="")
        return cls(
            host=config("TURNTABLE_HOST", default=DEFAULT_HOST),
            port=config("TURNTABLE_PORT", default=DEFAULT_PORT, cast=int),
            data_dir=Path(config("TURNTABLE_DATA_DIR", default=str(DEFAULT_DATA_DIR))),
            uploads_dir=Path(uploads_dir) if uploads_dir else None,
            max_upload_size=config(
                "TURNTABLE_MAX_UPLOAD_MB", default=MAX_UPLOAD_SIZE // (1024 * 1024), cast=int
            )
            * 1024
            * 1024,
            mdns=config("TURNTABLE_MDNS", default=True, cast=bool),
            log_level=config("TURNTABLE_LOG_LEVEL", default=DEFAULT_LOG_LEVEL).upper(),
            server_id=config("TURNTABLE_SERVER_ID", default=""),
        )

    @property
    def effective_server_id(self) -> str:
        """Server id to advertise, falling back to the host name."""
        return self.server_id or f"turntable-{socket.gethostname()}"
