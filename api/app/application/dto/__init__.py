"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import SyncRunResultDTO, TariffSnapshotDTO, SpreadsheetTargetDTO
