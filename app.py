"""Main FastAPI application for the API gateway."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

# Configure logging BEFORE importing any modules that use logger
log_level = os.getenv('LOG_LEVEL', 'INFO')
logging.basicConfig(
    level=getattr(logging, log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Import after logging is configured
from fastapi import FastAPI

from gateway import constants
from gateway.plugins.manager import ExternalPluginManager
from gateway.routers import plugins_router


def create_app(
    config_file: Optional[Path] = constants.EXTERNAL_PLUGINS_CONFIG,
    worker_id: int = constants.WORKER_ID,
    leader_id: int = constants.SUPERVISOR_WORKER_ID,
    terminate_on_shutdown: bool = True,
) -> FastAPI:
    """Create the gateway application for one worker.

    Args:
        config_file: External plugin servers definition file (None disables them)
        worker_id: Ordinal of this worker in the worker pool
        leader_id: Ordinal of the worker that supervises plugin servers
        terminate_on_shutdown: Terminate plugin servers when the worker stops
    """
    manager = ExternalPluginManager(
        config_file=config_file,
        worker_id=worker_id,
        leader_id=leader_id,
        info_timeout=constants.INFO_COMMAND_TIMEOUT,
        respawn_delay=constants.RESPAWN_DELAY,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting gateway worker #{worker_id}")
        logger.info(f"Working directory: {Path.cwd()}")

        # Discovery phase: blocking info commands, before any request is served
        count = manager.discover()
        logger.info(f"External plugins available: {count}")

        await manager.manage_servers()
        try:
            yield
        finally:
            logger.info(f"Shutting down gateway worker #{worker_id}")
            await manager.shutdown(
                terminate=terminate_on_shutdown,
                grace_period=constants.STOP_TIMEOUT,
            )

    app = FastAPI(
        title="API Gateway",
        description="API gateway with external plugin servers",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.external_plugins = manager
    app.include_router(plugins_router)

    @app.get("/")
    async def root():
        return {"message": "API Gateway", "docs": "/docs"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("app:app", host="0.0.0.0", port=port)
