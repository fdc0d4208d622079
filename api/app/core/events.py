"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from app.core.bootstrap import build_from_settings
from app.core.config import settings, get_spreadsheet_targets
from app.core.scheduler import build_scheduler
from app.infrastructure.database.session import init_db, close_db


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion de inicio
    """
    def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Configurar logging adicional
            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            # Validar configuracion critica
            _validate_config()

            # Construir dependencias del sync una sola vez
            tariffs_sync, engine = build_from_settings(settings)
            app.state.tariffs_sync = tariffs_sync
            app.state.engine = engine

            # Inicializar base de datos (crea tablas si no existen)
            init_db(engine)
            logger.info("Base de datos inicializada")

            # Scheduler diario
            app.state.scheduler = None
            if settings.SYNC_ENABLED:
                scheduler = build_scheduler(tariffs_sync, settings)
                scheduler.start()
                app.state.scheduler = scheduler
                logger.info("Scheduler iniciado")
            else:
                logger.warning("SYNC_ENABLED=false: el sync diario no se programará")

            logger.success("Aplicacion iniciada correctamente")

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """Advierte sobre configuracion critica ausente (no bloquea el arranque)."""
    warnings = []

    if not settings.WB_API_TOKEN:
        warnings.append("WB_API_TOKEN no configurado - el sync fallara en la etapa fetch")

    if not get_spreadsheet_targets(settings.GOOGLE_SHEETS_TARGETS):
        warnings.append("GOOGLE_SHEETS_TARGETS vacio - no se publicara en Google Sheets")

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion de cierre
    """
    def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("Scheduler detenido")

        # Cerrar conexiones de base de datos
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            close_db(engine)
            logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Ciclo de vida de la aplicacion (startup -> requests -> shutdown).

    Se pasa a FastAPI(lifespan=...); el shutdown corre aunque el servidor
    se detenga por una excepcion.
    """
    startup_handler(app)()
    try:
        yield
    finally:
        shutdown_handler(app)()
