"""
Utilidades para manejo de fechas y horas.
"""
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def get_zone(tz_name: str) -> ZoneInfo:
        """
        Resuelve una zona horaria IANA (p.ej. "UTC", "Europe/Moscow").

        Raises:
            ValueError: Si la zona no existe
        """
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Zona horaria desconocida: {tz_name}") from e

    @staticmethod
    def today_in(tz_name: str, now: Optional[datetime] = None) -> date:
        """
        Fecha calendario de "hoy" en la zona horaria indicada.

        Args:
            tz_name: Zona horaria IANA
            now: Instante de referencia (aware). Default: ahora en UTC

        Returns:
            date: Fecha sin componente horario
        """
        reference = now or DateTimeUtils.now_utc()
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        return reference.astimezone(DateTimeUtils.get_zone(tz_name)).date()

    @staticmethod
    def parse_date(value: str) -> date:
        """
        Convierte "YYYY-MM-DD" a date.

        Raises:
            ValueError: Si el formato no es valido
        """
        return date.fromisoformat(value.strip())
