"""
Construcción explícita de las dependencias del sync de tarifas.

Se llama una sola vez al arrancar el proceso (API o script) y el resultado
se pasa a quien lo necesite: no hay clientes ni conexiones globales.
"""
from typing import Tuple

from loguru import logger
from sqlalchemy.engine import Engine

from app.application.use_cases.tariffs_sync_use_cases import TariffsSyncUseCases
from app.core.config import Settings, get_google_credentials_info, get_spreadsheet_targets
from app.infrastructure.database.session import build_engine, build_session_factory
from app.infrastructure.external.google_sheets.client import (
    GoogleSheetsPublisher,
    build_authorized_session,
)
from app.infrastructure.external.wb_tariffs.client import TariffApiCredentials, TariffSourceClient
from app.infrastructure.repositories.tariff_repository import TariffRepository


def build_publisher(settings: Settings) -> GoogleSheetsPublisher:
    """
    Publicador de Google Sheets con la lista de tablas configurada.
    Sin credenciales, cada publicación fallará con PublishError (aislado por tabla).
    """
    targets = get_spreadsheet_targets(settings.GOOGLE_SHEETS_TARGETS)
    credentials_info = get_google_credentials_info(settings)

    session = None
    if credentials_info:
        session = build_authorized_session(credentials_info)
    elif targets:
        logger.warning("GOOGLE_SHEETS_CREDENTIALS no configurado: la publicación fallará")

    return GoogleSheetsPublisher(
        targets,
        session=session,
        worksheet=settings.GOOGLE_SHEETS_WORKSHEET,
        value_input_option=settings.GOOGLE_SHEETS_VALUE_INPUT_OPTION,
        timeout_s=settings.GOOGLE_SHEETS_TIMEOUT_S,
    )


def build_from_settings(settings: Settings) -> Tuple[TariffsSyncUseCases, Engine]:
    """
    Constructor "oficial" del pipeline a partir de la configuración.

    Returns:
        (caso de uso listo para ejecutar, engine a cerrar al terminar el proceso)
    """
    engine = build_engine(
        settings.effective_database_url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )
    repository = TariffRepository(
        build_session_factory(engine),
        batch_size=settings.SYNC_UPSERT_BATCH_SIZE,
    )

    credentials = TariffApiCredentials(token=settings.WB_API_TOKEN) if settings.WB_API_TOKEN else None
    source = TariffSourceClient(
        credentials,
        url=settings.WB_TARIFFS_URL,
        timeout_s=settings.WB_TIMEOUT_S,
        max_retries=settings.WB_MAX_RETRIES,
    )

    use_cases = TariffsSyncUseCases(
        source=source,
        repository=repository,
        publisher=build_publisher(settings),
        timezone=settings.SYNC_TIMEZONE,
    )
    return use_cases, engine
