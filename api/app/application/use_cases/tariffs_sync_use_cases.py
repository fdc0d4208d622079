"""
Caso de uso: sincronización diaria de tarifas.

Flujo de una corrida (estrictamente secuencial):
    Idle -> Fetching -> Persisting -> Reading -> Publishing -> Idle

- fetch / persist / read: un fallo aborta la corrida (Failed(stage)), sin
  reintento parcial. La siguiente corrida empieza de cero.
- publish: cada tabla destino se publica por separado; un PublishError se
  registra y se continúa con las demás. La corrida queda "partial".
- Solo una corrida activa a la vez: un disparo solapado se omite ("skipped").
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

from app.infrastructure.external.google_sheets.client import GoogleSheetsPublisher
from app.infrastructure.external.wb_tariffs.client import TariffSourceClient
from app.infrastructure.repositories.tariff_repository import TariffRepository, TariffRow
from app.shared.exceptions.sync import PublishError, TariffSyncError
from app.shared.utils.datetime_utils import DateTimeUtils

SNAPSHOT_HEADER = ["Tariff ID", "Name", "Price"]


class SyncStage(str, Enum):
    """Estados del orquestador."""
    IDLE = "idle"
    FETCHING = "fetch"
    PERSISTING = "persist"
    READING = "read"
    PUBLISHING = "publish"


class SyncStatus(str, Enum):
    """Resultado final de una corrida."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


def format_price(price: Decimal) -> str:
    """Precio como texto con dos decimales ("12.5" -> "12.50")."""
    return str(Decimal(price).quantize(Decimal("0.01")))


def build_snapshot_grid(rows: Sequence[TariffRow]) -> List[List[str]]:
    """
    Grilla para Google Sheets: encabezado fijo + una fila por tarifa.
    Las filas se ordenan por tariff_id para que la hoja sea estable.
    """
    values = [list(SNAPSHOT_HEADER)]
    for row in sorted(rows, key=lambda r: r.tariff_id):
        values.append([row.tariff_id, row.name, format_price(row.price)])
    return values


@dataclass
class SyncRunResult:
    """Resultado estructurado de una corrida."""

    run_date: date
    status: SyncStatus = SyncStatus.SUCCESS
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    fetched: int = 0
    upserted: int = 0
    snapshot_rows: int = 0
    published_targets: List[str] = field(default_factory=list)
    failed_targets: Dict[str, str] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_date": self.run_date.isoformat(),
            "status": self.status.value,
            "failed_stage": self.failed_stage,
            "error": self.error,
            "fetched": self.fetched,
            "upserted": self.upserted,
            "snapshot_rows": self.snapshot_rows,
            "published_targets": list(self.published_targets),
            "failed_targets": dict(self.failed_targets),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class TariffsSyncUseCases:
    """
    Orquestador del sync de tarifas.

    Todas las dependencias llegan construidas (cliente de la API, repositorio,
    publicador); no hay singletons de módulo.
    """

    def __init__(
        self,
        *,
        source: TariffSourceClient,
        repository: TariffRepository,
        publisher: GoogleSheetsPublisher,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = DateTimeUtils.now_utc,
    ) -> None:
        DateTimeUtils.get_zone(timezone)  # falla temprano si la zona no existe
        self._source = source
        self._repository = repository
        self._publisher = publisher
        self._timezone = timezone
        self._clock = clock
        self._run_lock = threading.Lock()
        self._stage = SyncStage.IDLE

    @property
    def stage(self) -> SyncStage:
        return self._stage

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    @property
    def timezone(self) -> str:
        return self._timezone

    def today(self) -> date:
        """Fecha calendario del disparo en la zona horaria configurada."""
        return DateTimeUtils.today_in(self._timezone, self._clock())

    def run(self, run_date: Optional[date] = None) -> SyncRunResult:
        """
        Ejecuta una corrida completa para `run_date` (default: hoy).

        Nunca lanza por errores de etapa (tipados o no): el resultado indica
        la etapa fallida.
        """
        day = run_date or self.today()

        if not self._run_lock.acquire(blocking=False):
            logger.warning(f"Sync de tarifas ya está corriendo; se omite el disparo para {day}")
            result = SyncRunResult(run_date=day, status=SyncStatus.SKIPPED)
            self._log_outcome(result)
            return result

        result = SyncRunResult(run_date=day, started_at=self._clock())
        try:
            logger.info(f"Iniciando sync de tarifas para {day.isoformat()} ({self._timezone})")
            self._run_stages(result)
        except TariffSyncError as e:
            result.status = SyncStatus.FAILED
            result.failed_stage = self._stage.value
            result.error = e.message
            logger.error(f"Sync de tarifas falló en la etapa '{self._stage.value}': {e.message}")
        except Exception as e:
            # Error no tipado (bug o librería): la corrida falla en la etapa activa
            result.status = SyncStatus.FAILED
            result.failed_stage = self._stage.value
            result.error = f"{type(e).__name__}: {e}"
            logger.opt(exception=e).error(
                f"Error inesperado en la etapa '{self._stage.value}' del sync de tarifas: {e}"
            )
        finally:
            result.finished_at = self._clock()
            self._stage = SyncStage.IDLE
            self._run_lock.release()

        self._log_outcome(result)
        return result

    def _run_stages(self, result: SyncRunResult) -> None:
        day = result.run_date

        self._stage = SyncStage.FETCHING
        tariffs = self._source.fetch_all()
        result.fetched = len(tariffs)

        self._stage = SyncStage.PERSISTING
        result.upserted = self._repository.upsert([(tariff, day) for tariff in tariffs])
        logger.info(f"Tarifas guardadas para {day.isoformat()}: {result.upserted}")

        self._stage = SyncStage.READING
        grid = self.read_snapshot(day)
        result.snapshot_rows = len(grid) - 1

        self._stage = SyncStage.PUBLISHING
        self._publish_all(grid, result)

    def _publish_all(self, grid: List[List[str]], result: SyncRunResult) -> None:
        targets = self._publisher.list_targets()
        if not targets:
            logger.warning("No hay tablas de Google Sheets configuradas; nada que publicar")
            return

        for target in targets:
            try:
                self._publisher.publish(target, grid)
                result.published_targets.append(target.spreadsheet_id)
            except PublishError as e:
                result.failed_targets[target.spreadsheet_id] = e.message
                logger.error(f"No se pudo publicar en {target.label}: {e.message}")
            except Exception as e:
                result.failed_targets[target.spreadsheet_id] = f"{type(e).__name__}: {e}"
                logger.opt(exception=e).error(f"Error inesperado publicando en {target.label}: {e}")

        if result.failed_targets:
            result.status = SyncStatus.PARTIAL

    def read_snapshot(self, day: date) -> List[List[str]]:
        """Grilla (encabezado + filas) con las tarifas guardadas del día."""
        return build_snapshot_grid(self._repository.read_by_date(day))

    def list_targets(self):
        return self._publisher.list_targets()

    def _log_outcome(self, result: SyncRunResult) -> None:
        outcome = result.to_dict()
        bound = logger.bind(context="tariffs_sync", **outcome)
        summary = (
            f"Sync de tarifas {outcome['status']}: fecha={outcome['run_date']}, "
            f"fetched={result.fetched}, upserted={result.upserted}, "
            f"publicadas={len(result.published_targets)}, fallidas={len(result.failed_targets)}"
        )
        if result.status == SyncStatus.FAILED:
            bound.error(f"{summary}, etapa={result.failed_stage}")
        elif result.status in (SyncStatus.PARTIAL, SyncStatus.SKIPPED):
            bound.warning(summary)
        else:
            bound.success(summary)
