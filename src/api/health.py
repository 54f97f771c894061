"""Health check and system info routes."""

import redis.asyncio as redis
from fastapi import APIRouter
from sqlalchemy import text

from src.config import get_settings
from src.parsers.registry import default_registry
from src.schemas.schemas import HealthResponse, ParserInfo

router = APIRouter(tags=["System"])

settings = get_settings()

VERSION = "1.0.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the service and its dependencies.",
)
async def health_check():
    """
    Health check endpoint.

    Returns the status of:
    - Database connection
    - Redis connection (Celery broker)
    """
    redis_status = "ok"
    try:
        client = redis.from_url(settings.redis_url)
        try:
            await client.ping()
        finally:
            await client.aclose()
    except Exception:
        redis_status = "error"

    db_status = "ok"
    try:
        from src.db.session import engine

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    overall_status = "healthy"
    if "error" in (redis_status, db_status):
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version=VERSION,
        database=db_status,
        redis=redis_status,
    )


@router.get(
    "/v1/parsers",
    response_model=list[ParserInfo],
    summary="List parsers",
    description="Parsers the import pipeline can run, in the order they are tried.",
)
async def list_parsers():
    return [
        ParserInfo(ident=parser.ident, description=parser.description)
        for parser in default_registry
    ]


@router.get(
    "/v1/info",
    summary="Service information",
    description="Get general information about the service.",
)
async def service_info():
    """Get service information."""
    return {
        "name": settings.app_name,
        "version": VERSION,
        "environment": settings.app_env,
        "parsers": list(default_registry.idents),
        "exclusion_file": settings.exclusion_file_path,
        "import_concurrency": settings.import_concurrency,
        "documentation": "/docs",
        "redoc": "/redoc",
    }
