# Platform Integrations - Main Application
"""
FastAPI application for the Platform Integrations service.
Connects user accounts to Jira, Monday.com and TROFOS and serves
normalized project data.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from platform_integrations.config import settings
from platform_integrations.database.connection import check_db_connection, init_db
from platform_integrations.errors import IntegrationError, error_handler
from platform_integrations.models.responses import HealthResponse
from platform_integrations.routers import connections_router
from platform_integrations.routers.connections import http_status_for
from platform_integrations.utils.logger import setup_logging

# Configure logging
setup_logging(settings.log_level, json_logs=settings.log_json)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    init_db()
    logger.info("Database initialized")
    
    yield
    
    # Shutdown
    logger.info(f"Shutting down {settings.service_name}")


# Create FastAPI app
app = FastAPI(
    title=settings.service_name,
    version=settings.service_version,
    description="Connects project-management platforms and serves normalized project data",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IntegrationError)
async def integration_exception_handler(request: Request, exc: IntegrationError):
    """Map the error taxonomy onto HTTP status codes."""
    status_code = http_status_for(exc.error_code)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=error_handler(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are client errors (400)."""
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request", "errors": problems}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    return JSONResponse(
        status_code=500,
        content=error_handler(exc)
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    db_connected = check_db_connection()
    return HealthResponse(
        status="healthy" if db_connected else "unhealthy",
        version=settings.service_version,
        database_connected=db_connected,
    )


# Include routers
app.include_router(connections_router, prefix="/api")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "platform_integrations.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
