"""
OEE Copilot

Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .core.config import settings
from .api.chat import router as chat_router
from .api.sessions import router as sessions_router
from .api.equipment import router as equipment_router
from .api.diagnostics import router as diagnostics_router
from .services.chat_service import get_chat_service
from .services.llm_responder import mask_api_key

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("oee_copilot.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    responder = get_chat_service().responder
    logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)
    logger.info("Generative answers: %s (key %s)",
                "enabled" if responder.enabled else "disabled, using templates",
                mask_api_key(responder.api_key))
    yield
    # Shutdown
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## OEE Copilot

    Ask questions about equipment uptime and downtime in plain language.

    ### Core Capabilities:
    - **Availability**: plant-wide and per-equipment, against the 85% benchmark
    - **Downtime & Pareto**: which failure reasons cost the most minutes
    - **Charts**: chart-ready data on request
    - **Graceful degradation**: template answers when no model key is set
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat_router, prefix=settings.API_PREFIX)
app.include_router(sessions_router, prefix=settings.API_PREFIX)
app.include_router(equipment_router, prefix=settings.API_PREFIX)
app.include_router(diagnostics_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
    }


@app.get(f"{settings.API_PREFIX}/health")
async def api_health_check():
    return await health_check()


if __name__ == "__main__":
    uvicorn.run(
        "oee_copilot.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
