"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import init_db, close_db
from .routers import (
    channels_router,
    cron_router,
    monitors_router,
    push_router,
    scripts_router,
    status_router,
)
from .services.scheduler import scheduler_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting Pingwatch")
    
    await init_db()
    logger.info("Database initialized")
    
    scheduler_service.start()
    
    yield
    
    scheduler_service.stop()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Pingwatch",
        description="Scripted uptime monitoring with Slack, Discord, webhook and Web Push alerts",
        version="1.0.0",
        lifespan=lifespan,
    )
    
    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.include_router(monitors_router)
    app.include_router(scripts_router)
    app.include_router(status_router)
    app.include_router(channels_router)
    app.include_router(push_router)
    app.include_router(cron_router)
    
    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}
    
    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
