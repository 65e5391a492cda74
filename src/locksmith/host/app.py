"""
Locksmith FastAPI Application.

This module assembles the administrative API server: it builds the network
manager from the configuration, mounts the API routers and ties the
manager's background work to the server lifecycle.

Responsibilities:
    - Peer registration and lifecycle calls
    - Network state queries
    - Expiration sweep and interface sync lifecycle
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from locksmith import __version__
from locksmith.config import LocksmithConfig
from locksmith.host.endpoints import networks
from locksmith.models.enums import LogLevel
from locksmith.nm.manager import NetworkManager
from locksmith.nm.registry import DriverRegistries, default_registries
from locksmith.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


# =============================================================================
# Application Setup
# =============================================================================


def create_app(
    config: LocksmithConfig,
    registries: DriverRegistries | None = None,
    manager: NetworkManager | None = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Service configuration.
        registries: Component registries; the built-ins when omitted.
        manager: Prebuilt manager to serve; built from config when omitted.
    """
    if manager is None:
        manager = NetworkManager(config, registries or default_registries())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the expiration sweep for as long as the server is up."""
        logger.info("Locksmith starting up")
        await manager.start()
        try:
            yield
        finally:
            logger.info("Locksmith shutting down")
            await manager.close()
            logger.info("Locksmith shut down complete")

    app = FastAPI(
        title="Locksmith",
        description="Peer admission control for VPN overlay networks",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.network_manager = manager

    app.include_router(networks.router, prefix="/api", tags=["Networks"])

    return app


# =============================================================================
# Server Entry Point
# =============================================================================


def run(config: LocksmithConfig) -> None:
    """Run the API server using uvicorn."""
    import uvicorn

    # Configure logging before starting uvicorn
    configure_logging(config.LOG_LEVEL, config.LOG_FILE)

    uvicorn_level_map = {
        LogLevel.FULL: "debug",
        LogLevel.DEBUG: "debug",
        LogLevel.INFO: "info",
        LogLevel.WARNING: "warning",
    }
    uvicorn_level = uvicorn_level_map.get(config.LOG_LEVEL, "info")

    app = create_app(config)

    logger.info(f"Starting Locksmith on {config.BIND_IP}:{config.PORT}")

    uvicorn.run(
        app,
        host=config.BIND_IP,
        port=config.PORT,
        log_level=uvicorn_level,
        log_config=None,  # Disable uvicorn's default logging config (use loguru)
    )
