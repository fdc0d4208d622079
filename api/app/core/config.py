"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales del sync de tarifas.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field

from app.infrastructure.external.google_sheets.types import SpreadsheetTarget


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos:
    - Aplicacion / servidor HTTP
    - Base de datos (DATABASE_URL completa o por componentes)
    - API de tarifas (Wildberries)
    - Google Sheets (credenciales de service account + lista de tablas destino)
    - Scheduler diario (hora, minuto y zona horaria explicita)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Tariffs Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="postgres")
    DATABASE_PASSWORD: str = Field(default="postgres")
    DATABASE_NAME: str = Field(default="postgres")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # API de tarifas
    WB_TARIFFS_URL: str = Field(default="https://common-api.wildberries.ru/api/v1/tariffs/box")
    WB_API_TOKEN: str = Field(default="")
    WB_TIMEOUT_S: float = Field(default=30.0)
    WB_MAX_RETRIES: int = Field(default=3)

    # Google Sheets
    GOOGLE_SHEETS_CREDENTIALS: str = Field(default="")  # JSON inline
    GOOGLE_SHEETS_CREDENTIALS_FILE: str = Field(default="")
    GOOGLE_SHEETS_TARGETS: str = Field(default="")
    GOOGLE_SHEETS_WORKSHEET: str = Field(default="Sheet1")
    GOOGLE_SHEETS_VALUE_INPUT_OPTION: str = Field(default="USER_ENTERED")
    GOOGLE_SHEETS_TIMEOUT_S: float = Field(default=30.0)

    # Scheduler diario
    SYNC_ENABLED: bool = Field(default=True)
    SYNC_CRON_HOUR: int = Field(default=1)
    SYNC_CRON_MINUTE: int = Field(default=0)
    SYNC_TIMEZONE: str = Field(default="UTC")
    SYNC_MISFIRE_GRACE_S: int = Field(default=3600)
    SYNC_UPSERT_BATCH_SIZE: int = Field(default=200)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_spreadsheet_targets(targets_string: str) -> List[SpreadsheetTarget]:
    """
    Parsea la lista de tablas destino de Google Sheets.

    Acepta una lista JSON (`[{"id": "...", "name": "..."}]` o `["id1", "id2"]`)
    o una lista simple separada por comas (`id1,id2`).

    Raises:
        ValueError: si un objeto JSON no trae un "id" no vacío
    """
    if not targets_string or not targets_string.strip():
        return []
    try:
        parsed = json.loads(targets_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple de ids
        return [
            SpreadsheetTarget(spreadsheet_id=part.strip())
            for part in targets_string.split(",")
            if part.strip()
        ]

    if not isinstance(parsed, list):
        parsed = [parsed]

    targets: List[SpreadsheetTarget] = []
    for item in parsed:
        if isinstance(item, dict):
            raw_id = item.get("id")
            spreadsheet_id = "" if raw_id is None else str(raw_id).strip()
            if not spreadsheet_id:
                raise ValueError(
                    f"GOOGLE_SHEETS_TARGETS: cada objeto debe tener un 'id' no vacío ({item!r})"
                )
            targets.append(SpreadsheetTarget(spreadsheet_id=spreadsheet_id, name=item.get("name")))
        else:
            targets.append(SpreadsheetTarget(spreadsheet_id=str(item)))
    return targets


def get_google_credentials_info(settings: "Settings") -> Optional[dict]:
    """
    Retorna el JSON de la service account de Google.
    GOOGLE_SHEETS_CREDENTIALS (inline) tiene prioridad sobre el archivo.
    """
    if settings.GOOGLE_SHEETS_CREDENTIALS:
        return json.loads(settings.GOOGLE_SHEETS_CREDENTIALS)
    if settings.GOOGLE_SHEETS_CREDENTIALS_FILE:
        with open(settings.GOOGLE_SHEETS_CREDENTIALS_FILE, encoding="utf-8") as fh:
            return json.load(fh)
    return None


# Instancia global de configuración
settings = Settings()
