"""
FastAPI application for Social Graph Service
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from .config import settings
from .errors import register_error_handlers
from .infrastructure.database.connection import db_connection
from .infrastructure.cache import cache
from .infrastructure.kafka_producer import kafka_producer
from .api import (
    users_router,
    people_router,
    graph_router,
    posts_router,
    messages_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Social Graph Service...")

    # Connect to database
    if settings.STORE_BACKEND == "postgres":
        await db_connection.connect()
        await db_connection.create_schema()
        logger.info("Database connected")

    # Connect to Redis
    await cache.connect()
    logger.info("Redis cache initialized")

    # Start Kafka producer
    await kafka_producer.start()
    logger.info("Kafka producer started")

    logger.info(f"Social Graph Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Social Graph Service...")

    await kafka_producer.stop()
    await cache.disconnect()
    if settings.STORE_BACKEND == "postgres":
        await db_connection.disconnect()

    logger.info("Social Graph Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Social Graph Service - profiles, follow requests, feed, discovery and direct messages",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# add routers
app.include_router(users_router)
app.include_router(people_router)
app.include_router(graph_router)
app.include_router(posts_router)
app.include_router(messages_router)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "social_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
