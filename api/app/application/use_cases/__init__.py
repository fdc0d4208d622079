"""
Casos de uso de la aplicacion.
"""
from .tariffs_sync_use_cases import TariffsSyncUseCases, SyncRunResult, SyncStage, SyncStatus

__all__ = ["TariffsSyncUseCases", "SyncRunResult", "SyncStage", "SyncStatus"]
