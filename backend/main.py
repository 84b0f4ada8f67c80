# main.py
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from contextlib import asynccontextmanager
import logging
from accounts.api.v1.routes import api_router
from accounts.core.config import settings
from accounts.core.database import db_helper
from accounts.core.dependencies import get_tier_mapper
from accounts.core.exceptions import AppException
from accounts.core.schema import ensure_schema

# Настройка логирования
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Контекстный менеджер для жизненного цикла приложения"""
    # Startup
    logger.info(f"Starting {settings.app_name} in {'DEBUG' if settings.debug else 'PRODUCTION'} mode")
    logger.info(f"Database: {settings.db.masked_url}")

    if not settings.stripe.verify_webhook_signature:
        logger.warning("Stripe webhook signature verification is DISABLED, events are trusted as-is")

    # Неверная таблица тарифов должна ронять старт, а не первый запрос
    get_tier_mapper()

    # Без схемы сервис не стартует
    try:
        await db_helper.ping()
        await ensure_schema(db_helper.db)
        logger.info("Database schema ensured")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await db_helper.dispose()
        raise

    yield

    # Shutdown
    await db_helper.dispose()
    logger.info("Application shutdown complete")

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.include_router(api_router, prefix="/api/v1")

@app.get("/health", summary="Health check", tags=["health"])
async def health_check():
    """Пинг MongoDB"""
    try:
        await db_helper.ping()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": str(e) if settings.debug else "unreachable",
                "timestamp": _now(),
            },
        )
    return {"status": "healthy", "database": "connected", "timestamp": _now()}


def _error_response(status_code: int, detail: str, error: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error": error, "timestamp": _now(), **extra},
    )


@app.exception_handler(AppException)
async def app_exception_handler(request, exc: AppException):
    """Ошибки сервисов и репозиториев в JSON"""
    error = type(exc).__name__
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail} ({error})")
        # Детали ошибок БД и Stripe наружу не отдаём
        detail = exc.detail if settings.debug else "general internal failure"
    else:
        logger.info(f"{request.method} {request.url.path}: {exc.status_code} {exc.detail}")
        detail = exc.detail
    return _error_response(exc.status_code, detail, error)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return _error_response(
        500,
        "Internal server error",
        "InternalServerError",
        debug_info=str(exc) if settings.debug else None,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning",
        access_log=False
    )
