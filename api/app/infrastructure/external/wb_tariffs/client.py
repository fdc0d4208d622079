"""
Cliente mínimo de la API de tarifas (REST, sin SDKs externos).

Requisitos cubiertos:
- requests
- Authorization: Bearer <token>
- timeout en cada request
- rate-limit/backoff acotado (429, 5xx, errores de conexión)
- el fallo persistente se propaga: el sync del día se aborta
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

import requests
from loguru import logger

from app.shared.exceptions.sync import AuthenticationError, DecodeError, TransportError

from .types import Tariff, parse_tariffs

DEFAULT_TARIFFS_URL = "https://common-api.wildberries.ru/api/v1/tariffs/box"


@dataclass(frozen=True)
class TariffApiCredentials:
    token: str


class TariffSourceClient:
    """
    Cliente HTTP de la API de tarifas.

    Importante:
    - No reintenta 4xx (salvo 429): son errores de config/auth.
    - 401/403 se reportan como AuthenticationError (credencial inválida).
    """

    def __init__(
        self,
        credentials: Optional[TariffApiCredentials],
        *,
        session: Optional[requests.Session] = None,
        url: str = DEFAULT_TARIFFS_URL,
        timeout_s: float = 30.0,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        sleep=time.sleep,
    ) -> None:
        self._creds = credentials
        self._url = url
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._sleep = sleep
        self._session = session or requests.Session()

    def fetch_all(self) -> list[Tariff]:
        """
        Obtiene todas las tarifas vigentes.

        Raises:
            AuthenticationError: sin token configurado (antes de cualquier I/O) o token rechazado
            TransportError: fallo de red o status no-2xx
            DecodeError: cuerpo no es un array JSON de tarifas válido
        """
        if not self._creds or not self._creds.token:
            raise AuthenticationError("No hay token configurado para la API de tarifas (WB_API_TOKEN)")

        resp = self._request("GET", self._url)
        try:
            payload = resp.json()
        except ValueError as e:
            raise DecodeError(f"La respuesta de {self._url} no es JSON válido") from e

        tariffs = parse_tariffs(payload)
        logger.info(f"API de tarifas: {len(tariffs)} tarifa(s) recibida(s)")
        return tariffs

    def _backoff_seconds(self, attempt: int, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return min(self._max_backoff_s, float(retry_after))
            except ValueError:
                return self._min_backoff_s
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)

    def _request(self, method: str, url: str) -> Any:
        """
        Request HTTP con backoff para 429/5xx y errores de conexión.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx / conexión / timeout: exponencial con jitter.
        - 401/403: AuthenticationError inmediato.
        - resto de 4xx: TransportError inmediato.
        """
        headers = {
            "Authorization": f"Bearer {self._creds.token}",
            "Accept": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                if attempt >= self._max_retries:
                    raise TransportError(
                        f"Fallo de red contra {url} tras {attempt} reintentos: {e}"
                    ) from e
                sleep_s = self._backoff_seconds(attempt, None)
                logger.warning(f"Fallo de red contra la API de tarifas ({e}); reintento en {sleep_s:.1f}s")
                self._sleep(sleep_s)
                continue

            if 200 <= resp.status_code < 300:
                return resp

            if resp.status_code in (401, 403):
                raise AuthenticationError(
                    f"La API de tarifas rechazó el token ({resp.status_code})",
                    details={"status": resp.status_code},
                )

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise TransportError(
                        f"API de tarifas error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        status=resp.status_code,
                    )
                sleep_s = self._backoff_seconds(attempt, resp.headers.get("Retry-After"))
                logger.warning(f"API de tarifas respondió {resp.status_code}; reintento en {sleep_s:.1f}s")
                self._sleep(sleep_s)
                continue

            # Errores no recuperables
            raise TransportError(
                f"API de tarifas request falló {resp.status_code}: {resp.text}",
                status=resp.status_code,
            )

        # max_retries < 0
        raise TransportError(f"Sin intentos disponibles contra {url}")
