"""
Punto de entrada de la API del sync de tarifas.

Expone el disparo manual del sync, el snapshot del día y el health check;
el scheduler diario se arranca en el evento de startup.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.events import lifespan
from app.api.v1.router import api_router
from app.api.middlewares.error_handler import ErrorHandlerMiddleware
from app.shared.exceptions.base import AppException


def _register_exception_handlers(application: FastAPI) -> None:
    """AppException (y subclases del sync) -> JSON {"error", "message", "details"}."""

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _sync_health(application: FastAPI) -> dict:
    scheduler = getattr(application.state, "scheduler", None)
    use_cases = getattr(application.state, "tariffs_sync", None)
    return {
        "initialized": use_cases is not None,
        "running": bool(use_cases and use_cases.is_running),
        "stage": use_cases.stage.value if use_cases else None,
        "scheduler_running": bool(scheduler and scheduler.running),
        "timezone": settings.SYNC_TIMEZONE,
    }


def create_application() -> FastAPI:
    """
    Factory de la aplicación FastAPI.

    No construye dependencias: el orquestador, el engine y el scheduler se
    crean en el startup y viven en app.state.
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Sync diario de tarifas: API -> PostgreSQL -> Google Sheets",
        lifespan=lifespan,
    )

    application.add_middleware(ErrorHandlerMiddleware)
    application.include_router(api_router, prefix="/api")
    _register_exception_handlers(application)

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Estado de la aplicación y del sync diario."""
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "sync": _sync_health(application),
        }

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn
    from loguru import logger

    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    logger.info(f"Swagger UI: http://{access_host}:{settings.PORT}/docs")
    logger.info(f"Sync manual: POST http://{access_host}:{settings.PORT}/api/v1/sync/tariffs")

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
