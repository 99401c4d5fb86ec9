"""FastAPI main application."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from logging_config import get_logger, setup_logging
from models import init_db
from api.middleware import setup_middleware
from api.routes import bookings, fleet, health, transporters

setup_logging()
logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info("Starting freight dispatch API", env=settings.app_env)

    for problem in settings.validate_required_settings():
        logger.warning("Configuration problem", problem=problem)

    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))

    yield

    logger.info("Shutting down freight dispatch API")


app = FastAPI(
    title="Freight Dispatch",
    description="Booking intake, transporter matching and fleet status for freight dispatch",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

app.include_router(health.router, tags=["Health"])
app.include_router(bookings.router, tags=["Bookings"])
app.include_router(transporters.router, tags=["Transporters"])
app.include_router(fleet.router, tags=["Fleet"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Freight Dispatch",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
