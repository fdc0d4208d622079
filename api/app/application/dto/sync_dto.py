"""
DTOs para la sincronización de tarifas (API -> PostgreSQL -> Google Sheets).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SyncRunResultDTO(BaseModel):
    """Resultado de una corrida del sync."""

    run_date: date
    status: str = Field(..., description="success | partial | failed | skipped")
    failed_stage: Optional[str] = Field(None, description="fetch | persist | read si la corrida falló")
    error: Optional[str] = None
    fetched: int = 0
    upserted: int = 0
    snapshot_rows: int = 0
    published_targets: List[str] = Field(default_factory=list)
    failed_targets: Dict[str, str] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class TariffSnapshotDTO(BaseModel):
    """Snapshot de un día tal como se publica en Google Sheets."""

    day: date = Field(..., description="Fecha del snapshot")
    values: List[List[str]] = Field(..., description="Encabezado + una fila por tarifa")


class SpreadsheetTargetDTO(BaseModel):
    """Tabla destino configurada."""

    id: str
    name: Optional[str] = None
