"""
Cliente de Google Sheets API v4 (REST) para publicar snapshots.

Requisitos cubiertos:
- auth con service account (google-auth -> AuthorizedSession, que es un requests.Session)
- escritura desde A1 en un solo values.update; las celdas sobrantes de la
  publicación anterior se escriben vacías (values.get previo para conocer el tamaño)
- backoff acotado para 429/5xx
- errores por tabla como PublishError (el caller decide si continúa)
"""

from __future__ import annotations

import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Sequence
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from loguru import logger

from app.shared.exceptions.sync import PublishError

from .types import CellValue, Grid, SpreadsheetTarget

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
SHEETS_API_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"


def build_authorized_session(credentials_info: dict[str, Any]) -> AuthorizedSession:
    """
    Crea una sesión HTTP autenticada con la service account indicada.
    El token se obtiene/renueva automáticamente en cada request.
    """
    credentials = service_account.Credentials.from_service_account_info(
        credentials_info, scopes=SCOPES
    )
    return AuthorizedSession(credentials)


def quote_sheet_name(sheet: str) -> str:
    """
    Escapa el nombre de la hoja para notación A1.

    "Sheet1" -> "Sheet1"; "Тарифы 2025" -> "'Тарифы 2025'"; "It's" -> "'It''s'"
    """
    if sheet.replace("_", "").isalnum() and sheet.isascii():
        return sheet
    return "'" + sheet.replace("'", "''") + "'"


def pad_grid(values: list[list[Any]], min_rows: int, min_cols: int) -> list[list[Any]]:
    """
    Completa la grilla con "" hasta cubrir min_rows x min_cols.

    Sheets API interpreta "" como celda vacía, así que una sola escritura
    reemplaza el contenido previo sin dejar filas o columnas viejas.
    """
    width = max([min_cols] + [len(row) for row in values])
    padded = [list(row) + [""] * (width - len(row)) for row in values]
    padded.extend([""] * width for _ in range(max(0, min_rows - len(padded))))
    return padded


def to_cell(value: CellValue) -> Any:
    """Convierte un valor a algo serializable como celda JSON."""
    if value is None:
        return ""
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class GoogleSheetsPublisher:
    """
    Publica una grilla 2-D en cada tabla configurada.

    Importante:
    - list_targets() es estático: la lista llega por configuración.
    - publish() sobrescribe "<worksheet>!A1" (la primera fila es el encabezado).
    - Si la escritura falla, la hoja conserva la publicación anterior.
    """

    def __init__(
        self,
        targets: Sequence[SpreadsheetTarget],
        *,
        session: Optional[requests.Session] = None,
        worksheet: str = "Sheet1",
        value_input_option: str = "USER_ENTERED",
        clear_stale_cells: bool = True,
        base_url: str = SHEETS_API_BASE_URL,
        timeout_s: float = 30.0,
        max_retries: int = 3,
        min_backoff_s: float = 1.0,
        max_backoff_s: float = 30.0,
        sleep=time.sleep,
    ) -> None:
        self._targets = list(targets)
        self._session = session
        self._worksheet = worksheet
        self._value_input_option = value_input_option
        self._clear_stale_cells = clear_stale_cells
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._sleep = sleep

    def list_targets(self) -> list[SpreadsheetTarget]:
        """Tablas destino configuradas."""
        return list(self._targets)

    @property
    def update_range(self) -> str:
        return f"{quote_sheet_name(self._worksheet)}!A1"

    @property
    def sheet_range(self) -> str:
        return quote_sheet_name(self._worksheet)

    def publish(self, target: SpreadsheetTarget, rows: Grid) -> None:
        """
        Sobrescribe la hoja de la tabla destino con `rows`.

        Raises:
            PublishError: sin credenciales, 401/403 (auth), 404 (tabla inexistente),
                otros 4xx, o 429/5xx/red tras agotar reintentos
        """
        if self._session is None:
            raise PublishError(
                "No hay credenciales de Google Sheets configuradas",
                spreadsheet_id=target.spreadsheet_id,
            )

        values = [[to_cell(cell) for cell in row] for row in rows]
        spreadsheet_url = f"{self._base_url}/{quote(target.spreadsheet_id, safe='')}"

        if self._clear_stale_cells:
            current = self._request(
                target,
                "GET",
                f"{spreadsheet_url}/values/{quote(self.sheet_range, safe='')}",
                params={"majorDimension": "ROWS"},
            )
            previous = current.get("values") or []
            values = pad_grid(
                values,
                min_rows=len(previous),
                min_cols=max((len(row) for row in previous), default=0),
            )

        self._request(
            target,
            "PUT",
            f"{spreadsheet_url}/values/{quote(self.update_range, safe='')}",
            params={"valueInputOption": self._value_input_option},
            json={
                "range": self.update_range,
                "majorDimension": "ROWS",
                "values": values,
            },
        )
        logger.info(f"Google Sheet {target.label} actualizado ({len(rows)} fila(s))")

    def _backoff_seconds(self, attempt: int, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return min(self._max_backoff_s, float(retry_after))
            except ValueError:
                return self._min_backoff_s
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)

    def _request(
        self,
        target: SpreadsheetTarget,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        sid = target.spreadsheet_id
        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                    timeout=self._timeout_s,
                )
            except GoogleAuthError as e:
                raise PublishError(f"Google Sheets: fallo de autorización para {sid}: {e}", spreadsheet_id=sid) from e
            except requests.RequestException as e:
                if attempt >= self._max_retries:
                    raise PublishError(f"Google Sheets: fallo de red para {sid}: {e}", spreadsheet_id=sid) from e
                self._sleep(self._backoff_seconds(attempt, None))
                continue

            if 200 <= resp.status_code < 300:
                if not resp.content:
                    return {}
                try:
                    return resp.json()
                except ValueError as e:
                    raise PublishError(
                        f"Google Sheets: respuesta {resp.status_code} no es JSON para {sid}",
                        spreadsheet_id=sid,
                        status=resp.status_code,
                    ) from e

            if resp.status_code in (401, 403):
                raise PublishError(
                    f"Google Sheets: sin autorización para la tabla {sid} ({resp.status_code})",
                    spreadsheet_id=sid,
                    status=resp.status_code,
                )
            if resp.status_code == 404:
                raise PublishError(
                    f"Google Sheets: la tabla {sid} no existe",
                    spreadsheet_id=sid,
                    status=resp.status_code,
                )

            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise PublishError(
                        f"Google Sheets error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        spreadsheet_id=sid,
                        status=resp.status_code,
                    )
                sleep_s = self._backoff_seconds(attempt, resp.headers.get("Retry-After"))
                logger.warning(f"Google Sheets respondió {resp.status_code} para {sid}; reintento en {sleep_s:.1f}s")
                self._sleep(sleep_s)
                continue

            raise PublishError(
                f"Google Sheets request falló {resp.status_code}: {resp.text}",
                spreadsheet_id=sid,
                status=resp.status_code,
            )

        raise PublishError(f"Sin intentos disponibles para {sid}", spreadsheet_id=sid)
