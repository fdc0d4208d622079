"""
Repositorio de tarifas (SQLAlchemy) para:
- UPSERT por (tariff_id, date)
- lectura del snapshot de un día

Soporta PostgreSQL (producción) y SQLite (tests) vía INSERT ... ON CONFLICT.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Sequence

from loguru import logger
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.infrastructure.database.models import TariffModel
from app.infrastructure.external.wb_tariffs.types import Tariff
from app.shared.exceptions.sync import StorageError
from app.shared.utils.datetime_utils import DateTimeUtils

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class TariffRow:
    """Fila del snapshot de un día."""

    tariff_id: str
    name: str
    price: Decimal


class TariffRepository:
    """
    Gestiona la tabla tariffs.

    - upsert: idempotente, sin atomicidad entre registros (commit por lote)
    - read_by_date: orden no garantizado; lista vacía si no hay filas
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        batch_size: int = 200,
        clock: Callable[[], datetime] = DateTimeUtils.now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._batch_size = max(1, batch_size)
        self._clock = clock

    def _insert_for(self, session: Session):
        dialect = session.get_bind().dialect.name
        insert = _DIALECT_INSERTS.get(dialect)
        if insert is None:
            raise StorageError(f"Dialecto no soportado para UPSERT: {dialect}")
        return insert

    def _build_rows(self, records: Iterable[tuple[Tariff, date]]) -> list[dict]:
        # Un mismo (tariff_id, date) repetido en la entrada: gana el último
        by_key: dict[tuple[str, date], dict] = {}
        for tariff, day in records:
            by_key[(tariff.tariff_id, day)] = {
                "tariff_id": tariff.tariff_id,
                "name": tariff.name,
                "price": tariff.price,
                "raw_data": tariff.raw_data,
                "date": day,
            }
        return list(by_key.values())

    def upsert(self, records: Sequence[tuple[Tariff, date]]) -> int:
        """
        Inserta o actualiza tarifas por (tariff_id, date).

        - Si no existe: inserta con created_at = updated_at = now
        - Si existe: sobrescribe name, price, raw_data y updated_at; created_at no cambia

        Returns:
            int: número de registros procesados

        Raises:
            StorageError: ante cualquier fallo de persistencia. Los lotes
                anteriores al fallo quedan confirmados.
        """
        rows = self._build_rows(records)
        if not rows:
            return 0

        processed = 0
        for start in range(0, len(rows), self._batch_size):
            batch = rows[start:start + self._batch_size]
            now = self._clock()
            for row in batch:
                row["created_at"] = now
                row["updated_at"] = now

            with self._session_factory() as session:
                try:
                    insert = self._insert_for(session)
                    stmt = insert(TariffModel).values(batch)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[TariffModel.tariff_id, TariffModel.date],
                        set_={
                            "name": stmt.excluded.name,
                            "price": stmt.excluded.price,
                            "raw_data": stmt.excluded.raw_data,
                            "updated_at": stmt.excluded.updated_at,
                        },
                    )
                    session.execute(stmt)
                    session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    raise StorageError(
                        f"Fallo al guardar tarifas (lote {start}-{start + len(batch)}): {e}"
                    ) from e
            processed += len(batch)

        logger.debug(f"Upsert de tarifas: {processed} registro(s)")
        return processed

    def read_by_date(self, day: date) -> list[TariffRow]:
        """
        Retorna todas las tarifas del día indicado (orden no garantizado).

        Raises:
            StorageError: ante fallos de lectura
        """
        query = select(TariffModel.tariff_id, TariffModel.name, TariffModel.price).where(
            TariffModel.date == day
        )
        try:
            with self._session_factory() as session:
                result = session.execute(query)
                return [
                    TariffRow(tariff_id=r.tariff_id, name=r.name, price=Decimal(r.price))
                    for r in result
                ]
        except SQLAlchemyError as e:
            raise StorageError(f"Fallo al leer tarifas del {day.isoformat()}: {e}", stage="read") from e
