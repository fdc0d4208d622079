"""
Endpoints para sincronizacion de tarifas.
Permite disparar el sync manualmente y consultar el snapshot de un dia.
"""
import asyncio
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from app.api.v1.dependencies.use_case_deps import get_tariffs_sync_use_cases
from app.application.dto.sync_dto import SpreadsheetTargetDTO, SyncRunResultDTO, TariffSnapshotDTO
from app.application.use_cases.tariffs_sync_use_cases import SyncStatus, TariffsSyncUseCases
from app.shared.exceptions.sync import SyncAlreadyRunningError


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/tariffs",
    response_model=SyncRunResultDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar tarifas (API -> PostgreSQL -> Google Sheets)"
)
async def sync_tariffs(
    run_date: Optional[date] = Query(
        default=None,
        alias="date",
        description="Fecha a sincronizar (YYYY-MM-DD). Default: hoy en SYNC_TIMEZONE."
    ),
    use_cases: TariffsSyncUseCases = Depends(get_tariffs_sync_use_cases),
) -> SyncRunResultDTO:
    """
    Ejecuta una corrida del sync de tarifas.

    - Un fallo en fetch/persist/read se informa con status=failed y failed_stage
    - Un fallo en una tabla de Google Sheets no detiene las demas (status=partial)
    - Si ya hay una corrida en curso responde 409
    """
    logger.info("Iniciando sync de tarifas desde API")

    # Ejecutar sync en thread separado para no bloquear el event loop
    result = await asyncio.to_thread(use_cases.run, run_date)

    if result.status == SyncStatus.SKIPPED:
        raise SyncAlreadyRunningError()

    return SyncRunResultDTO(**result.to_dict())


@router.get(
    "/tariffs/snapshot",
    response_model=TariffSnapshotDTO,
    summary="Snapshot de tarifas guardadas para una fecha"
)
async def get_tariffs_snapshot(
    snapshot_date: Optional[date] = Query(
        default=None,
        alias="date",
        description="Fecha (YYYY-MM-DD). Default: hoy en SYNC_TIMEZONE."
    ),
    use_cases: TariffsSyncUseCases = Depends(get_tariffs_sync_use_cases),
) -> TariffSnapshotDTO:
    """Retorna la grilla (encabezado + filas) que se publicaria en Google Sheets."""
    day = snapshot_date or use_cases.today()
    values = await asyncio.to_thread(use_cases.read_snapshot, day)
    return TariffSnapshotDTO(day=day, values=values)


@router.get(
    "/targets",
    response_model=List[SpreadsheetTargetDTO],
    summary="Tablas de Google Sheets configuradas"
)
async def list_targets(
    use_cases: TariffsSyncUseCases = Depends(get_tariffs_sync_use_cases),
) -> List[SpreadsheetTargetDTO]:
    return [
        SpreadsheetTargetDTO(id=target.spreadsheet_id, name=target.name)
        for target in use_cases.list_targets()
    ]
