import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from edubridge.config.settings import settings, ENV_FILE
from edubridge.config.feature_flags import feature_flags
from edubridge.database import init_db, close_db
from edubridge.middleware.error_handler import setup_error_handlers
from edubridge.rate_limit import limiter
from edubridge.routes import router
from edubridge.services.retry import ConnectionHealth, RetryPolicy
from edubridge.services.settings_service import SettingsCache

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    logger.info(f"Environment file: {ENV_FILE} (exists: {ENV_FILE.exists()})")
    logger.info(f"Feature flags: {feature_flags.get_all_flags()}")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")


app = FastAPI(
    title="EduBridge API",
    description="Academic resource sharing with lecturer approval",
    version="1.0.0",
    docs_url="/docs" if settings.is_development() else None,
    redoc_url="/redoc" if settings.is_development() else None,
    lifespan=lifespan
)

# Process-wide collaborators, injected into routes via edubridge/dependencies.py
app.state.limiter = limiter
app.state.retry_policy = RetryPolicy.from_settings()
app.state.connection_health = ConnectionHealth()
app.state.settings_cache = SettingsCache()

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
logger.info("✓ Rate limiter configured")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

setup_error_handlers(app, debug=settings.is_development() and settings.LOG_LEVEL == "DEBUG")

app.include_router(router)


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "storage": app.state.connection_health.snapshot(),
        "version": "1.0.0"
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "EduBridge API",
        "version": "1.0.0",
        "docs": "/docs" if settings.is_development() else None
    }
