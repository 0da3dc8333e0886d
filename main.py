# main.py
"""Main application entry point"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.endpoints import router
from config import settings
from database.session import create_tables
from services.logger_config import setup_logging

setup_logging()
logger = logging.getLogger(settings.LOGGER_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting application...")

    await create_tables()
    logger.info("Database initialized")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
