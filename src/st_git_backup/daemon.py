import logging
import sys
import threading
from logging.handlers import RotatingFileHandler

import uvicorn

from .constants import (
    APP_NAME,
    DEFAULT_HOST,
    DEFAULT_PORT,
    LOG_FILE,
    MAX_LOG_SIZE,
    STARTUP_SYNC_DELAY,
)
from .api import create_app
from .engine import SyncEngine

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


class StartupSync:
    """Fires a single sync a fixed delay after `start`.

    The sync runs with no caller overrides, relying entirely on the persisted
    configuration. Failures are logged and absorbed; they still leave the
    engine's status in the error state.

    Attributes:
        engine (SyncEngine): The engine to trigger.
        delay (float): Seconds to wait before triggering.
    """

    def __init__(self, engine: SyncEngine, delay: float = STARTUP_SYNC_DELAY):
        self.engine = engine
        self.delay = delay
        self._timer: threading.Timer | None = None

    def start(self) -> None:
        if self._timer is not None:
            return
        self._timer = threading.Timer(self.delay, self.fire)
        self._timer.daemon = True
        self._timer.start()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def fire(self) -> None:
        logger.info("STARTUP: running startup sync...")
        try:
            self.engine.sync({})
            logger.info("STARTUP: startup sync finished.")
        except Exception as e:
            logger.error(f"STARTUP ERROR: startup sync failed: {e}")


def setup_logging(interactive: bool) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to stderr
                            and to a rotating log file.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        try:
            LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=MAX_LOG_SIZE,
                backupCount=5,
            )
        except OSError as e:
            logger.warning(f"Could not open log file {LOG_FILE}: {e}")
            return
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def serve(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    delay: float = STARTUP_SYNC_DELAY,
    engine: SyncEngine | None = None,
) -> None:
    """Runs the HTTP control interface with a startup sync scheduled.

    Blocks until the server exits.

    Args:
        host (str): The bind address.
        port (int): The bind port.
        delay (float): Seconds before the startup sync fires.
        engine (SyncEngine | None): The engine to serve. A default one is
                                    created when omitted.
    """
    engine = engine or SyncEngine()
    app = create_app(engine)

    scheduler = StartupSync(engine, delay)
    scheduler.start()
    logger.info(f"Service started on http://{host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    finally:
        scheduler.cancel()


def main() -> None:
    """Entry point for the background service."""
    setup_logging(interactive=False)
    serve()


if __name__ == "__main__":
    main()
