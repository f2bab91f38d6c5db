"""
Switchboard Config Server: process entry point.

Loads config/server.yaml, builds the repository chain once, and serves it
with uvicorn:

    NativeEnvironmentRepository(search_locations)
      -> CompositeEnvironmentRepository
        -> ParameterStoreEnvironmentRepository   (when parameter_store.enabled)

Environment variables:
    CONFIG_FILE              Path to server.yaml (default: config/server.yaml)
    CONFIG_SERVER_PORT       Listen port (default: 8888)
    AWS_REGION               Parameter Store region (default: us-west-2)
    AWS_ACCESS_KEY_ID        Static credentials (optional, with AWS_SECRET_ACCESS_KEY)
    PARAMETER_STORE_PREFIX   Parameter hierarchy root (default: /switchboard)
"""

import logging
import os
import sys

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)

from switchboard_config.api import create_app  # noqa: E402
from switchboard_config.composite_repository import CompositeEnvironmentRepository  # noqa: E402
from switchboard_config.config_loader import ConfigLoader, ServerSettings  # noqa: E402
from switchboard_config.enriched_repository import ParameterStoreEnvironmentRepository  # noqa: E402
from switchboard_config.native_repository import NativeEnvironmentRepository  # noqa: E402
from switchboard_config.parameter_store import ParameterStoreClient  # noqa: E402
from switchboard_config.repository import EnvironmentRepository  # noqa: E402


def build_repository(settings: ServerSettings) -> EnvironmentRepository:
    """
    Compose the repository chain from settings.

    The Parameter Store decorator wraps the top-level composite exactly once,
    so each request makes a single Parameter Store fetch.
    """
    native = NativeEnvironmentRepository(
        search_locations=settings.native.search_locations,
        default_label=settings.native.default_label,
    )
    base = CompositeEnvironmentRepository([native])

    store = settings.parameter_store
    if not store.enabled:
        logger.info("Parameter Store enrichment disabled")
        return base

    client = ParameterStoreClient.from_settings(store)
    logger.info("Parameter Store enrichment enabled | prefix=%s", store.prefix)
    return ParameterStoreEnvironmentRepository(base, client, prefix=store.prefix)


def main() -> None:
    """Load settings, build the repository chain, and serve until interrupted."""
    try:
        settings = ConfigLoader(os.getenv("CONFIG_FILE", ConfigLoader.DEFAULT_CONFIG_PATH)).load()
        logging.getLogger().setLevel(settings.log_level)
        app = create_app(build_repository(settings))
    except Exception as exc:
        logger.exception("Config server failed to start: %s", exc)
        sys.exit(1)

    logger.info(
        "Switchboard config server starting | host=%s | port=%d | search_locations=%s",
        settings.host,
        settings.port,
        settings.native.search_locations,
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    logger.info("Config server stopped")


if __name__ == "__main__":
    main()
