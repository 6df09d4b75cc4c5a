"""
GrantFlow API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Event subscribers and message handlers
- Background job scheduler
- Domain error handling
- CORS middleware and API routing
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from grantflow.api import api_router
from grantflow.core.config import settings
from grantflow.core.database import async_session_maker, close_db, init_db
from grantflow.core.events import dispatcher
from grantflow.core.exceptions import DomainError, ValidationFailedError
from grantflow.core.messenger import bus, register_messenger_jobs
from grantflow.core.redis import close_redis, get_redis_client, init_redis
from grantflow.core.scheduler import (
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from grantflow.modules.users.subscribers import register_user_subscribers
from grantflow.modules.validations.handlers import register_validation_handlers
from grantflow.modules.validations.jobs import register_validation_jobs
from grantflow.modules.validations.subscribers import register_validation_subscribers


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection
    - Database connection
    - Event subscribers and message handlers
    - Background job scheduler
    """
    # Startup
    print(f"Starting GrantFlow API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    register_user_subscribers(dispatcher)
    register_validation_subscribers(dispatcher)
    register_validation_handlers(bus)
    print("[OK] Event subscribers and message handlers registered")

    try:
        # Register jobs before starting the scheduler
        register_validation_jobs()
        register_messenger_jobs()

        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    # Shutdown
    print("Shutting down GrantFlow API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await bus.drain()
    dispatcher.clear()

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="GrantFlow API",
    description="Grant application platform API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    """Render service errors as ``{"detail": {"error": ..., "message": ...}}``."""
    detail = {"error": exc.error_code, "message": exc.message}
    if isinstance(exc, ValidationFailedError):
        detail["violations"] = exc.violations
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to GrantFlow API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}


# ============================================
# Debug Endpoints (development only)
# ============================================
# Connection checks and manual control of background jobs. In production the
# jobs run on schedule and these routes are not mounted.

if settings.is_development:

    @app.get("/debug/db", tags=["Debug"])
    async def debug_db():
        """Test database connection."""
        try:
            async with async_session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                return {"database": "connected", "result": result.scalar()}
        except Exception as e:
            return {"database": "error", "message": str(e)}

    @app.get("/debug/redis", tags=["Debug"])
    async def debug_redis():
        """Test Redis connection."""
        client = get_redis_client()
        try:
            if client:
                await client.ping()
                return {"redis": "connected"}
            return {"redis": "not initialized"}
        except Exception as e:
            return {"redis": "error", "message": str(e)}

    @app.get("/debug/jobs", tags=["Debug"])
    async def list_jobs():
        """List all registered background jobs and their status."""
        return {"jobs": list_registered_jobs()}

    @app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
    async def trigger_job(job_id: str):
        """
        Manually trigger a background job.

        Args:
            job_id: The ID of the job to trigger. Available jobs:
                - validations_purge_expired
                - messenger_consume

        Raises:
            HTTPException 400: If job_id is not found.
        """
        try:
            return await trigger_job_manually(job_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    @app.post("/debug/jobs/{job_id}/pause", tags=["Debug"])
    async def pause_job_endpoint(job_id: str):
        """Pause a scheduled background job."""
        return {"job_id": job_id, "paused": pause_job(job_id)}

    @app.post("/debug/jobs/{job_id}/resume", tags=["Debug"])
    async def resume_job_endpoint(job_id: str):
        """Resume a paused background job."""
        return {"job_id": job_id, "resumed": resume_job(job_id)}
