"""
Excepciones del pipeline de sincronización de tarifas.

Etapas fatales para la corrida (abortan sin reintento parcial):
- fetch:   AuthenticationError, TransportError, DecodeError
- persist: StorageError
- read:    StorageError

Etapa aislada por destino:
- publish: PublishError (se registra y se continúa con el siguiente destino)
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class TariffSyncError(AppException):
    """Excepción base del sync de tarifas."""

    stage: str = "sync"

    def __init__(
        self,
        message: str,
        error_code: str = "TARIFF_SYNC_ERROR",
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class AuthenticationError(TariffSyncError):
    """Credencial ausente o rechazada por la API de tarifas."""

    stage = "fetch"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", status_code=401, details=details)


class TransportError(TariffSyncError):
    """Fallo de red o HTTP (incluye status no-2xx) al obtener tarifas."""

    stage = "fetch"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(
            message,
            error_code="TRANSPORT_ERROR",
            details={"status": status} if status is not None else None,
        )
        self.status = status


class DecodeError(TariffSyncError):
    """El cuerpo de la respuesta no tiene la forma esperada."""

    stage = "fetch"

    def __init__(self, message: str):
        super().__init__(message, error_code="DECODE_ERROR")


class StorageError(TariffSyncError):
    """Fallo de persistencia durante el upsert o la lectura del snapshot."""

    stage = "persist"

    def __init__(self, message: str, stage: str = "persist"):
        super().__init__(message, error_code="STORAGE_ERROR", status_code=500)
        self.stage = stage


class PublishError(TariffSyncError):
    """Fallo al publicar en una tabla de Google Sheets concreta."""

    stage = "publish"

    def __init__(self, message: str, spreadsheet_id: str, status: Optional[int] = None):
        super().__init__(
            message,
            error_code="PUBLISH_ERROR",
            details={"spreadsheet_id": spreadsheet_id, "status": status},
        )
        self.spreadsheet_id = spreadsheet_id
        self.status = status


class SyncAlreadyRunningError(AppException):
    """Ya hay una corrida del sync en curso."""

    def __init__(self):
        super().__init__(
            message="Ya hay una sincronización de tarifas en curso",
            status_code=409,
            error_code="SYNC_ALREADY_RUNNING",
        )
