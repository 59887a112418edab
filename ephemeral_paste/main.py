"""
Ephemeral Paste - Main FastAPI application.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ephemeral_paste.config import Settings, settings as default_settings
from ephemeral_paste.database import PasteStore, create_store
from ephemeral_paste.lifecycle import PasteLifecycle
from ephemeral_paste.routes import health, pastes

# Configure logging
logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the paste store on startup and close it on shutdown."""
    logger.info("Ephemeral Paste application starting...")

    owns_store = app.state.store is None
    if owns_store:
        app.state.store = await create_store(app.state.settings)
        app.state.lifecycle = PasteLifecycle(app.state.store)

    # Log database status
    if app.state.store.name == "memory":
        logger.warning("⚠️  DATABASE: Using IN-MEMORY storage")
        logger.warning("   Data will NOT persist across server restarts!")
    else:
        logger.info(f"✅ DATABASE: Using {app.state.store.name} store")

    yield

    logger.info("Ephemeral Paste application shutting down...")
    if owns_store:
        await app.state.store.close()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client input errors."""
    return JSONResponse(status_code=400, content={"detail": "invalid request body"})


def create_app(settings: Optional[Settings] = None, store: Optional[PasteStore] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        settings: Settings override (defaults to environment settings)
        store: Store to use instead of building one from settings
    """
    app = FastAPI(
        title="Ephemeral Paste",
        description="Share text that expires by time or by view count",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or default_settings
    app.state.store = store
    if store is not None:
        app.state.lifecycle = PasteLifecycle(store)

    # Add CORS middleware (optional, for cross-origin requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include route modules
    app.include_router(health.router)
    app.include_router(pastes.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ephemeral_paste.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
    )
