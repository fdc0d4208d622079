"""
Tipos y utilidades puras para las tarifas obtenidas de la API.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from app.shared.exceptions.sync import DecodeError

REQUIRED_FIELDS = ("tariff_id", "name", "price")


@dataclass(frozen=True)
class Tariff:
    """
    Tarifa tal como llega de la API.

    - tariff_id, name, price: subconjunto conocido y tipado
    - raw_data: objeto original completo (incluye campos propios del proveedor)
    """

    tariff_id: str
    name: str
    price: Decimal
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False)


def _parse_price(value: Any, index: int) -> Decimal:
    # bool es subclase de int: no lo aceptamos como precio
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise DecodeError(f"Tarifa #{index}: 'price' no es numérico ({value!r})")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise DecodeError(f"Tarifa #{index}: 'price' no es numérico ({value!r})") from e
    if not price.is_finite():
        raise DecodeError(f"Tarifa #{index}: 'price' no es finito ({value!r})")
    if price < 0:
        raise DecodeError(f"Tarifa #{index}: 'price' negativo ({value!r})")
    return price


def parse_tariff(payload: Any, index: int = 0) -> Tariff:
    """
    Valida y convierte un objeto JSON en Tariff.

    Raises:
        DecodeError: si falta algún campo requerido o tiene tipo inválido
    """
    if not isinstance(payload, dict):
        raise DecodeError(f"Tarifa #{index}: se esperaba un objeto, llegó {type(payload).__name__}")

    missing = [name for name in REQUIRED_FIELDS if payload.get(name) is None]
    if missing:
        raise DecodeError(f"Tarifa #{index}: faltan campos requeridos {missing}")

    tariff_id = payload["tariff_id"]
    if isinstance(tariff_id, bool) or not isinstance(tariff_id, (str, int)):
        raise DecodeError(f"Tarifa #{index}: 'tariff_id' inválido ({tariff_id!r})")
    tariff_id = str(tariff_id).strip()
    if not tariff_id:
        raise DecodeError(f"Tarifa #{index}: 'tariff_id' vacío")

    name = payload["name"]
    if not isinstance(name, str):
        raise DecodeError(f"Tarifa #{index}: 'name' no es texto ({name!r})")

    return Tariff(
        tariff_id=tariff_id,
        name=name,
        price=_parse_price(payload["price"], index),
        raw_data=dict(payload),
    )


def parse_tariffs(payload: Any) -> list[Tariff]:
    """
    Convierte el cuerpo de la respuesta (array JSON plano) en tarifas.

    Raises:
        DecodeError: si el cuerpo no es una lista o algún elemento es inválido
    """
    if not isinstance(payload, list):
        raise DecodeError(
            f"Se esperaba un array JSON de tarifas, llegó {type(payload).__name__}"
        )
    return [parse_tariff(item, index) for index, item in enumerate(payload)]
