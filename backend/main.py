"""
FastAPI application entry point for the AI Manager backend service.

This module sets up the FastAPI application with CORS, health endpoints,
and routes for provider streaming and conversation storage.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import check_database_health, create_tables
from modules.chat.routes import openai_router, router as chat_router
from modules.message_store.routes import router as store_router
from utils.logging import log_request, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown tasks."""
    # Startup
    setup_logging(settings.log_level)
    logging.info("Starting ai-manager backend service")

    # Create database tables
    await create_tables()
    logging.info("Database tables created/verified")

    yield

    # Shutdown
    logging.info("Shutting down ai-manager backend service")


# Create FastAPI application
app = FastAPI(
    title="AI Manager Backend",
    description="Provider streaming and conversation storage for the AI Manager chat",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["x-response-id"],
)


# Request logging
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    start = time.perf_counter()
    response = await call_next(request)
    log_request(
        request.method,
        request.url.path,
        response.status_code,
        round(time.perf_counter() - start, 4),
    )
    return response


# Health check endpoints
@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "ai-manager-backend"}


@app.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with service dependencies."""
    database_ok = await check_database_health()
    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "ai-manager-backend",
        "version": "0.1.0",
        "dependencies": {
            "database": "healthy" if database_ok else "unhealthy",
            "graphql": "configured" if settings.graphql_url else "not_configured",
        },
    }


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logging.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# Include routers
app.include_router(chat_router, prefix="/api/chat", tags=["chat"])
app.include_router(openai_router, prefix="/api/openai", tags=["chat"])
app.include_router(store_router, prefix="/api/ai", tags=["conversations"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
