"""
Main FastAPI application for the Naraka Tournament API.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import settings
from app.core.database import SessionLocal, init_db, check_connection
from app.core.logging import configure_logging, get_logger
from app.core.middleware import CorrelationIdMiddleware
from app.core.rate_limit import limiter, HEALTH_LIMIT, GENERAL_LIMIT
from app.core import metrics
from app.api.routes import competition, sync

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Configure structured logging (JSON by default, coloured console when LOG_JSON=false)
configure_logging(
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_db()
    logger.info("Database tables ready")

    if settings.SYNC_SCHEDULE_ENABLED:
        from app.core.scheduler import start_scheduler
        await start_scheduler()
        logger.info("Sync scheduler started")
    metrics.update_scheduler_metrics()

    logger.info("Application started")

    yield

    # Shutdown
    if settings.SYNC_SCHEDULE_ENABLED:
        from app.core.scheduler import stop_scheduler
        await stop_scheduler()
        logger.info("Sync scheduler stopped")
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Tournament data sync and read API for the NARAKA competition dashboard",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
logger.info("Prometheus metrics initialized at /metrics")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers mount under /api: /api/competition/..., /api/sync/...
app.include_router(competition.router, prefix="/api")
app.include_router(sync.router, prefix="/api")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Turn anything a route did not handle into a JSON 500."""
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "error": str(exc)}
    )


@app.get("/")
@limiter.limit(GENERAL_LIMIT)
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "competitions": "/api/competition/list",
            "stages": "/api/competition/stage/list",
            "scores": "/api/competition/rank/score",
            "team_rankings": "/api/competition/rank/team/data",
            "hero_stats": "/api/competition/rank/hero",
            "weapon_stats": "/api/competition/rank/weapon",
            "sync": "/api/sync",
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }
    }


@app.get("/health")
@limiter.limit(HEALTH_LIMIT)
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/api/health")
@limiter.limit(GENERAL_LIMIT)
async def api_health(request: Request):
    """Detailed API health check with component-level status."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {}
    }

    # 1. Database Health Check
    db = SessionLocal()
    try:
        check_connection(db)
        health_status["components"]["database"] = {"status": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "error": str(e)
        }
        health_status["status"] = "unhealthy"
    finally:
        db.close()

    # 2. Scheduler Health Check
    from app.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        jobs = scheduler.scheduler.get_jobs() if scheduler.scheduler else []
        health_status["components"]["scheduler"] = {
            "status": "running",
            "jobs": [{"id": j.id, "name": j.name} for j in jobs]
        }
    else:
        health_status["components"]["scheduler"] = {
            "status": "disabled" if not settings.SYNC_SCHEDULE_ENABLED else "stopped"
        }
    metrics.update_scheduler_metrics()

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
