"""Web server entry point for the FileDeck file manager"""

import socket
import sys

import uvicorn

from filedeck.utils.config import load_settings
from filedeck.utils.exceptions import ConfigError
from filedeck.utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


def _port_in_use(host: str, port: int) -> bool:
    """Return True if the given port is already in use."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return False
        except OSError:
            return True


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logger(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        file_path=settings.logging.file_path,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )

    if _port_in_use(settings.host, settings.port):
        logger.error("Port is already in use", host=settings.host, port=settings.port)
        return 1

    # Imported late so logging is configured before the app modules bind their loggers
    from web.main import create_app

    try:
        app = create_app(settings)
    except ConfigError as e:
        logger.error("Startup failed", error=str(e))
        return 1

    logger.info(
        "Starting FileDeck",
        url=f"http://localhost:{settings.port}{settings.admin_path}",
        root=str(settings.root_path),
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
