"""
SnapVocab - Backend Application

FastAPI application that turns photos and typed words into a personal
vocabulary deck and drills it with spaced repetition.

Features:
    - Word extraction from photos with Gemini (preview, confirm, cancel)
    - English definitions and Chinese translations with Gemini
    - Pronunciation and sentence audio with Azure Speech
    - Spaced-repetition reviews and daily stats

Run:
    python main.py
    # or
    uvicorn main:app --reload
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
import uvicorn

from config.settings import settings
from core import database
from core.database import Base
from core.schemas import HealthResponse
from core.dependencies import get_initialized_services, get_media_store, get_providers
from routers import reviews, stats, words
from utils.cache import check_redis_health
from utils.circuit_breaker import get_circuit_statuses
from utils.exceptions import SnapVocabError
from utils.logging import setup_logging, get_logger
from utils.rate_limit import limiter, rate_limit_exceeded_handler

# Initialize logging
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

def _ensure_sqlite_directory(url: str) -> None:
    """Create the parent directory of a file-based SQLite database."""
    if url.startswith("sqlite") and ":memory:" not in url:
        Path(url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
        - Startup: Create storage directories and database tables, build providers
        - Shutdown: Dispose of the database engine
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    get_media_store()
    _ensure_sqlite_directory(database.DATABASE_URL)

    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized")

    get_providers()

    yield

    logger.info("Shutting down application")
    await database.engine.dispose()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title=settings.APP_NAME,
    description="Photo-to-vocabulary deck builder with spaced-repetition review",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Attach rate limiter to app state
app.state.limiter = limiter


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=500)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(SnapVocabError)
async def snapvocab_exception_handler(request: Request, exc: SnapVocabError):
    """
    Handle application exceptions.

    Returns standardized error response with appropriate status code.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{exc.__class__.__name__}: {exc.message}", extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# =============================================================================
# Routers
# =============================================================================

app.include_router(words.router)
app.include_router(reviews.router)
app.include_router(stats.router)

app.mount(
    settings.UPLOADS_URL_PREFIX,
    StaticFiles(directory=settings.uploads_path, check_dir=False),
    name="uploads",
)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Detailed health check endpoint.

    Checks:
        - Database connectivity
        - Redis connectivity
        - Provider mode (live or offline) and circuit states
    """
    db_healthy = await database.check_database_health()
    redis_healthy = await check_redis_health()

    return HealthResponse(
        status="healthy" if db_healthy else "degraded",
        components={
            "database": db_healthy,
            "redis": redis_healthy,
            "gemini_configured": settings.GOOGLE_API_KEY is not None,
            "azure_speech_configured": settings.AZURE_SPEECH_API_KEY is not None,
            "circuits": get_circuit_statuses(),
        },
        services_loaded=get_initialized_services(),
        version=settings.APP_VERSION,
    )


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
