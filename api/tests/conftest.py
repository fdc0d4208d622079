"""
Configuración de fixtures para pytest.
"""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Generator, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.infrastructure.database.session import Base, build_session_factory
from app.infrastructure.database import models  # noqa: F401
from app.infrastructure.external.wb_tariffs.types import Tariff
from app.infrastructure.repositories.tariff_repository import TariffRepository


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite:///:memory:"


class FakeClock:
    """Reloj controlable: cada llamada retorna el instante actual, advance() lo mueve."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """
    Engine SQLite en memoria compartido por todas las sesiones del test.
    Crea las tablas al inicio y las elimina al final.
    """
    test_engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)

    yield test_engine

    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository(session_factory: sessionmaker, clock: FakeClock) -> TariffRepository:
    return TariffRepository(session_factory, batch_size=2, clock=clock)


@pytest.fixture
def run_date() -> date:
    return date(2024, 5, 1)


@pytest.fixture
def make_tariff() -> Callable[..., Tariff]:
    """Factory de tarifas con raw_data coherente con los campos tipados."""

    def _make(tariff_id: str, name: str, price: str, **extra) -> Tariff:
        raw = {"tariff_id": tariff_id, "name": name, "price": price, **extra}
        return Tariff(tariff_id=tariff_id, name=name, price=Decimal(price), raw_data=raw)

    return _make


@pytest.fixture
def sample_tariffs(make_tariff) -> List[Tariff]:
    return [
        make_tariff("T2", "Pallet", "7.5"),
        make_tariff("T1", "Box", "12.50", warehouse="Koledino"),
    ]
