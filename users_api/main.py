# users_api/main.py
# Точка входа FastAPI. Создание таблиц выполняется при старте с обработкой ошибок.

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from users_api.db.session import engine
from users_api.db.base import Base
from users_api.core.config import settings
from users_api.core.errors import error_map
from users_api.api import users as users_router

# Импорт моделей, чтобы SQLAlchemy видел их определения
import users_api.models.user  # noqa: F401

# Настройка логирования
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Users API"
VERSION = "1.0.0"


def try_create_tables(retries: int = 5, delay: int = 2) -> bool:
    """
    Пытаемся создать таблицы с повторными попытками.
    Если БД недоступна, логируем ошибку и пробуем снова.

    Args:
        retries: Количество попыток подключения
        delay: Задержка между попытками в секундах

    Returns:
        True если таблицы созданы/существуют, False если все попытки исчерпаны
    """
    for attempt in range(1, retries + 1):
        try:
            logger.info(f"Попытка создания таблиц ({attempt}/{retries})...")
            Base.metadata.create_all(bind=engine)
            logger.info("✅ Database tables created (or already exist).")
            return True
        except Exception as e:
            logger.warning(f"❌ Attempt {attempt}/{retries} failed to create tables: {e}")
            if attempt < retries:
                logger.info(f"⏳ Waiting {delay}s before retry...")
                time.sleep(delay)
    logger.error(f"❌ Could not create tables after {retries} retries.")
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Управление жизненным циклом приложения.
    Запускается при старте и завершении приложения.
    """
    logger.info("🚀 Users API starting up...")
    if not try_create_tables(retries=5, delay=2):
        logger.error("⚠️ Failed to create database tables. Application may not work correctly.")
        if settings.is_production:
            raise RuntimeError("Cannot start application: database tables creation failed")

    yield

    logger.info("🛑 Users API shutting down...")
    try:
        engine.dispose()
        logger.info("✅ Database connection closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")


app = FastAPI(
    title=SERVICE_NAME,
    description="Управление учётными записями пользователей",
    version=VERSION,
    lifespan=lifespan,
)

# CORS: в development разрешаем всё, иначе только CORS_ORIGINS
if settings.ENVIRONMENT == "development":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

app.include_router(users_router.router, prefix="/users", tags=["users"])


@app.get("/", tags=["health"])
async def root():
    """Базовый health check."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health", tags=["health"])
def health():
    """Health check с проверкой подключения к БД."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable", "version": VERSION},
        )
    return {"status": "healthy", "database": "connected", "version": VERSION}


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Ошибки разбора query/path/JSON — тот же конверт 400, что и у валидации полей."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": "Error processing request data.",
            "errors": error_map(exc.errors()),
            "status": status.HTTP_400_BAD_REQUEST,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Глобальный обработчик ошибок."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": "Internal server error",
            "error": str(exc) if settings.ENVIRONMENT == "development" else "An error occurred",
            "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "users_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
