"""Upload Receiver application.

This is the main entry point for the upload receiver service: an HTTP
server that accepts multipart submissions, stores files in a local
directory, lists them and pushes live refresh notifications to browsers.

Routes:
    - GET /: upload form and live file listing
    - POST /upload: store multipart file parts
    - GET /uploads/{name}: stream a stored file
    - GET /events: server-sent refresh notifications
    - GET /health: liveness check
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from upload_receiver import __version__
from upload_receiver.config import AppConfig, load_config
from upload_receiver.cors import configure_cors
from upload_receiver.events.debounce import Debouncer
from upload_receiver.events.notifier import REFRESH, ChangeNotifier
from upload_receiver.events.router import router as events_router
from upload_receiver.events.watcher import DirectoryWatcher
from upload_receiver.pages.router import router as pages_router
from upload_receiver.uploads.router import router as uploads_router
from upload_receiver.uploads.service import UploadStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# watchfiles reports every raw change at INFO; multipart logs each part.
for _noisy in (
    "watchfiles",
    "watchfiles.main",
    "httpx",
    "httpcore",
    "multipart",
    "python_multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Seconds uvicorn waits for open event streams before forcing shutdown
GRACEFUL_SHUTDOWN_SECONDS = 5


def apply_log_level(level: str) -> None:
    """Apply the configured level (already validated) to the root logger."""
    logging.getLogger().setLevel(getattr(logging, level.upper()))
    logger.info("Root logger level set to %s", level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    watcher: Optional[DirectoryWatcher] = app.state.watcher
    if watcher is not None:
        watcher.start()
    else:
        logger.info("Filesystem watch disabled; refreshing on API uploads only")

    logger.info(f"Storing uploads in {app.state.store.directory}")

    yield  # Application runs here

    # Shutdown
    if watcher is not None:
        await watcher.stop()
    app.state.debouncer.cancel()
    app.state.notifier.close_all()
    logger.info("Application shutdown complete")


async def _not_found_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    # Unknown paths and wrong methods are both reported as missing
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not found", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build an application instance with its own store and subscribers.

    Raises:
        OSError: If the uploads directory cannot be created.
    """
    config = config or AppConfig()

    app = FastAPI(
        title="Upload Receiver",
        description="Receives multipart file uploads and lists them with live refresh",
        version=__version__,
        lifespan=lifespan,
    )

    notifier = ChangeNotifier(queue_size=config.events.queue_size)
    debouncer = Debouncer(
        config.events.debounce_ms / 1000.0,
        lambda: notifier.broadcast(REFRESH),
    )
    store = UploadStore(config.storage.uploads_dir)

    app.state.config = config
    app.state.store = store
    app.state.notifier = notifier
    app.state.debouncer = debouncer
    app.state.watcher = (
        DirectoryWatcher(store.directory, debouncer.trigger) if config.events.watch else None
    )

    configure_cors(app)
    app.add_exception_handler(StarletteHTTPException, _not_found_handler)

    app.include_router(pages_router)
    app.include_router(uploads_router)
    app.include_router(events_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status object indicating the server is running.
        """
        return {"status": "ok"}

    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point: ``upload-receiver [--port N] [--uploads-dir DIR]``."""
    try:
        config = load_config(sys.argv[1:] if argv is None else argv)
    except ValidationError as e:
        logger.error(f"Invalid configuration:\n{e}")
        raise SystemExit(2)

    apply_log_level(config.logging.level)
    app = create_app(config)

    logger.info(
        f"Upload receiver listening on http://{config.server.host}:{config.server.port}"
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        timeout_keep_alive=config.server.keep_alive_seconds,
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_SECONDS,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
