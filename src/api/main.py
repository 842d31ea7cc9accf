import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.deps import build_services
from src.api.routes import files
from src.app_shell.config import DeliveryConfig, load_config, prepare_storage
from src.components.signing import ClockPort
from src.components.transform import ImageTransformerPort
from src.core.errors import ConfigError
from src.shell.http.health import (
    DirectoryWritableCheck,
    HealthCheckRegistry,
    create_health_router,
)

VERSION = "0.1.0"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def install_services(
    app: FastAPI,
    config: DeliveryConfig,
    *,
    transformer: ImageTransformerPort | None = None,
    clock: ClockPort | None = None,
) -> None:
    """Prepare storage, wire components onto app.state and register health checks."""
    prepare_storage(config)
    services = build_services(config, transformer=transformer, clock=clock)
    services.cache.purge_partials()

    registry: HealthCheckRegistry = app.state.health_registry
    registry.clear()
    registry.register(DirectoryWritableCheck("storage", config.storage_root))
    registry.register(DirectoryWritableCheck("transform_cache", config.resolved_cache_root))

    app.state.services = services
    logger.info(
        "Serving %s (cache %s, env %s)",
        config.storage_root,
        config.resolved_cache_root,
        config.environment,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load configuration on startup unless the app was built with one (fail-fast)."""
    if getattr(app.state, "services", None) is None:
        try:
            config = load_config()
        except ConfigError as e:
            logger.critical("Configuration load failed: %s", e)
            sys.exit(1)

        logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
        install_services(app, config)

    yield


def create_app(
    config: DeliveryConfig | None = None,
    *,
    transformer: ImageTransformerPort | None = None,
    clock: ClockPort | None = None,
) -> FastAPI:
    app = FastAPI(
        title="Asset Delivery API",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.health_registry = HealthCheckRegistry()

    if config is not None:
        install_services(app, config, transformer=transformer, clock=clock)

    # --- Routers ---
    app.include_router(files.router, tags=["Files"])
    app.include_router(create_health_router(VERSION, app.state.health_registry))

    return app


app = create_app()
