"""
Главный модуль FastAPI приложения Boutique Admin API.

Содержит сборку приложения, обработчики ошибок, middleware и роутеры.
Подключение к базе данных создается явно и живет от старта до остановки
приложения.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException

from boutique_admin.api.v1.routers import api_router
from boutique_admin.core.config import settings
from boutique_admin.core.errors import ServiceError
from boutique_admin.core.ratelimit import limiter
from boutique_admin.db.database import Database

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, code: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Все ошибки превращаются в структурированный ответ {"success": false, "error": ...}.
    """

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        else:
            message = "Invalid request"
        return _error(422, message, "validation_error")

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
        return _error(429, "Too many login attempts, try again later", "rate_limited")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error(exc.status_code, str(exc.detail), "http_error", getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error on {request.method} {request.url.path}")
        return _error(500, "Unexpected error", "unexpected_error")


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Собирает экземпляр приложения.

    Args:
        database: Подключение к БД; по умолчанию создается из DATABASE_URL

    Returns:
        FastAPI: Готовое приложение
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Boutique Admin API",
        description="API админки магазина: каталог, категории, заказы и складские остатки",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.limiter = limiter

    # Настройка CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Локальное хранилище изображений раздается как статика
    if settings.STORAGE_TYPE == "local":
        app.mount(
            "/static",
            StaticFiles(directory=settings.STORAGE_PATH, check_dir=False),
            name="static",
        )

    register_exception_handlers(app)

    @app.get("/healthz")
    def healthz():
        """
        Health check endpoint для мониторинга состояния приложения.
        """
        return {"status": "ok", "service": "Boutique Admin API", "version": "1.0.0"}

    # Подключение API роутеров
    app.include_router(api_router, prefix="/api/v1")

    @app.on_event("startup")
    def startup_event():
        """Открывает подключение к базе данных."""
        app.state.database.connect()

    @app.on_event("shutdown")
    def shutdown_event():
        """Закрывает пул соединений."""
        app.state.database.dispose()

    return app


app = create_app()
