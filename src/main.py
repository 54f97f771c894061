"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import health, projects, revisions, translations
from src.config import get_settings
from src.db.session import init_db
from src.exceptions import (
    DuplicateProjectError,
    DuplicateRevisionError,
    ObjectNotFoundError,
    RepositoryNotConfiguredError,
    RevisionValidationError,
)
from src.services import events  # noqa: F401  (registers revision lifecycle listeners)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting String Import Service...")

    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    yield

    logger.info("Shutting down String Import Service...")


app = FastAPI(
    title="String Import Service",
    description="""
## Commit string import and readiness tracking

Register a project's git repository, then track commits as **revisions**:
- **Import**: every file of the commit is offered to the bundled parsers
  (`yaml`, `json`, `strings`, `xib3`); extracted strings become keys with one
  translation per targeted locale
- **Readiness**: a revision is ready once every key has copy in every
  required locale and the import finished without errors
- **Notifications**: import errors are posted to the configured webhook

Key exclusions come from the project settings and from the exclusion file
(`.translations.yml` by default) in the imported commit.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": str(exc)})


@app.exception_handler(RevisionValidationError)
async def revision_validation_handler(request: Request, exc: RevisionValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Validation failed", "detail": str(exc), "field": exc.field},
    )


@app.exception_handler(DuplicateRevisionError)
async def duplicate_revision_handler(request: Request, exc: DuplicateRevisionError):
    return _error(409, "Duplicate revision", exc)


@app.exception_handler(DuplicateProjectError)
async def duplicate_project_handler(request: Request, exc: DuplicateProjectError):
    return _error(409, "Duplicate project", exc)


@app.exception_handler(RepositoryNotConfiguredError)
async def repository_not_configured_handler(request: Request, exc: RepositoryNotConfiguredError):
    return _error(400, "Repository not configured", exc)


@app.exception_handler(ObjectNotFoundError)
async def object_not_found_handler(request: Request, exc: ObjectNotFoundError):
    return _error(404, "Commit not found", exc)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# Include routers
app.include_router(health.router)
app.include_router(projects.router)
app.include_router(revisions.router)
app.include_router(translations.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with service info."""
    return {
        "service": "String Import Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
