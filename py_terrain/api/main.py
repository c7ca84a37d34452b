"""FastAPI main application."""

import logging

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import settings
from .terrain import router as terrain_router, terrain_manager

# Configure logging
logging.basicConfig(format="%(message)s", level=getattr(logging, settings.log_level.upper(), logging.INFO))

if settings.log_format == "json":
    renderer = structlog.processors.JSONRenderer()
else:
    renderer = structlog.dev.ConsoleRenderer()

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        renderer,
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Terrain Heightmap API",
    description="Procedural heightmap generation, brush editing and terrain queries",
    version="0.1.0",
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(terrain_router)


@app.on_event("startup")
async def startup_event():
    """Generate the default terrain."""
    logger.info("Starting terrain API")
    terrain_manager.initialize()
    logger.info("API startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Release the terrain."""
    logger.info("Shutting down terrain API")
    terrain_manager.dispose()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Terrain Heightmap API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    heightmap = terrain_manager.heightmap
    return {
        "status": "healthy",
        "terrain_loaded": heightmap is not None,
        "cells": heightmap.rows * heightmap.cols if heightmap is not None else 0,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
