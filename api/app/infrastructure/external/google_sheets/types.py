"""
Tipos para la publicación en Google Sheets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

CellValue = Any
Grid = Sequence[Sequence[CellValue]]


@dataclass(frozen=True)
class SpreadsheetTarget:
    """
    Tabla destino de Google Sheets.

    - spreadsheet_id: id opaco de la tabla (de la URL del documento)
    - name: nombre para mostrar (opcional, solo informativo)
    """

    spreadsheet_id: str
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.name} ({self.spreadsheet_id})" if self.name else self.spreadsheet_id
