"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, Integer, DateTime, Date, Numeric, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base


class TariffModel(Base):
    """
    Modelo de base de datos para tarifas.

    Una fila por tarifa y por dia: (tariff_id, date) es unico. raw_data
    guarda el payload original completo de la API para auditoria/replay.
    """

    __tablename__ = "tariffs"
    __table_args__ = (
        UniqueConstraint("tariff_id", "date", name="uq_tariffs_tariff_id_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tariff_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    raw_data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Tariff(tariff_id={self.tariff_id}, date={self.date}, price={self.price})>"
