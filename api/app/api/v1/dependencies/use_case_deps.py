"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Request

from app.application.use_cases.tariffs_sync_use_cases import TariffsSyncUseCases
from app.shared.exceptions.base import AppException


def get_tariffs_sync_use_cases(request: Request) -> TariffsSyncUseCases:
    """
    Dependencia para obtener el orquestador del sync de tarifas.
    Se construye una sola vez en el startup y vive en app.state.

    Returns:
        TariffsSyncUseCases: Instancia compartida del orquestador
    """
    use_cases = getattr(request.app.state, "tariffs_sync", None)
    if use_cases is None:
        raise AppException(
            message="El sync de tarifas no está inicializado",
            status_code=503,
            error_code="SYNC_NOT_INITIALIZED",
        )
    return use_cases
