"""Entrypoint for the marine workflow HTTP server."""

from __future__ import annotations

import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from marine_workflow import __version__
from marine_workflow.config import load_settings
from marine_workflow.logging_utils import configure_logging, get_logger


def run_entrypoint() -> None:
    """Configure logging and serve the HTTP adapter with uvicorn."""
    settings = load_settings()
    configure_logging()
    from marine_workflow.transport.http_server import create_http_app

    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to run the HTTP server") from exc

    logger = get_logger(__name__)
    logger.info("Initializing marine workflow server v%s", __version__)
    if settings.logging.file:
        logger.info("Log file configured at: %s", settings.logging.file)

    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
