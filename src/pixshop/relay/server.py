"""Run the relay with uvicorn."""

import uvicorn

from pixshop.core.config import Config, get_config
from pixshop.logging_config import get_logger
from pixshop.relay.app import create_app

logger = get_logger(__name__)


def run_server(
    config: Config | None = None,
    host: str | None = None,
    port: int | None = None,
    log_level: str = "info",
) -> None:
    """Serve the relay until interrupted. host/port default to the config values."""
    config = config or get_config()
    host = host or config.relay_host
    port = port or config.relay_port
    if not config.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; /api/generate will return 500")
    logger.info("Starting pixshop relay on http://%s:%d", host, port)
    uvicorn.run(create_app(config), host=host, port=port, log_level=log_level)
