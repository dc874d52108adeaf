# tokenable/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
from typing import Dict, Optional
from dotenv import load_dotenv
load_dotenv()

from . import __version__
from .settings import settings
from .storage.sqlite_base import close_sqlite_db_connection, get_sqlite_db_connection
from .tokens.endpoints import tokens_admin_router, tokens_auth_router
from .tokens.sqlite_token_store import get_sqlite_token_store
from .tokens.storage_interfaces import AbstractTokenStore

# Configure logging based on debug mode setting
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level="DEBUG" if settings.debug_mode else settings.log_level.upper(),
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG if settings.debug_mode else settings.log_level.upper())

# Initialized during application startup
token_store_instance: Optional[AbstractTokenStore] = None


@asynccontextmanager
async def tokenable_app_lifespan(app_instance: FastAPI):
    """
    Application lifespan manager: opens the SQLite connection and token store
    on startup and releases them on shutdown.
    """
    global token_store_instance

    logger.info("Application startup initiated.")
    try:
        await get_sqlite_db_connection()
        token_store_instance = await get_sqlite_token_store()
        logger.info("SQLite connection and token store initialized.")
    except Exception as e:
        logger.error(f"Error during storage initialization: {e}", exc_info=True)
        raise

    yield

    logger.info("Application shutdown initiated.")
    try:
        if token_store_instance is not None:
            await token_store_instance.teardown()
        await close_sqlite_db_connection()
    except Exception as e_td:
        logger.error(f"Teardown error: {e_td}", exc_info=True)
    logger.info("All components torn down.")


# FastAPI application setup with lifespan management
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug_mode,
    version=__version__,
    lifespan=tokenable_app_lifespan
)


@app.get("/")
async def root_api():
    return {"message": f"Welcome to {settings.app_name}!"}


@app.get("/health")
async def health_api():
    """Health check endpoint that validates storage backend connectivity."""
    store_statuses: Dict[str, str] = {}
    all_healthy = True

    try:
        conn = await get_sqlite_db_connection()
        conn.execute("SELECT 1")
        store_statuses["sqlite_main_db"] = "healthy"
    except Exception as e:
        store_statuses["sqlite_main_db"] = f"unhealthy: {e}"
        all_healthy = False

    return {
        "status": "healthy" if all_healthy else "degraded",
        "details": store_statuses
    }


# Mount all routers
app.include_router(tokens_admin_router)
app.include_router(tokens_auth_router)
