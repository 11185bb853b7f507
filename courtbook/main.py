"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courtbook.api import facilities, sessions, cancellations
from courtbook.core.config import settings
from courtbook.services.scheduler import session_sweeper
from courtbook.services.session_store import session_store

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting court booking portal")
    logger.info(f"Booking backend: {settings.API_BASE_URL}")

    await session_sweeper.start()

    yield

    # Shutdown
    logger.info("Shutting down court booking portal")
    await session_sweeper.stop()


# Create FastAPI app
app = FastAPI(
    title="Court Booking Portal",
    description="Slot selection, pricing and checkout for multi-tenant sports facilities",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(facilities.router)
app.include_router(sessions.router)
app.include_router(cancellations.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "sweeper_running": session_sweeper.running,
        "open_sessions": len(session_store),
    }


if __name__ == "__main__":
    uvicorn.run("courtbook.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
