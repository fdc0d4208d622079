"""
Tests unitarios para el orquestador del sync de tarifas.

Verifica:
- Flujo completo fetch -> persist -> read -> publish.
- Un fallo en fetch/persist/read aborta la corrida con la etapa fallida.
- Un fallo al publicar en una tabla no impide publicar en las demás.
- Una corrida solapada se omite.
"""
from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List
from unittest.mock import MagicMock

import pytest
import requests

from app.application.use_cases.tariffs_sync_use_cases import (
    SNAPSHOT_HEADER,
    SyncStage,
    SyncStatus,
    TariffsSyncUseCases,
    build_snapshot_grid,
    format_price,
)
from app.infrastructure.external.google_sheets.client import GoogleSheetsPublisher
from app.infrastructure.external.google_sheets.types import SpreadsheetTarget
from app.infrastructure.repositories.tariff_repository import TariffRow
from app.shared.exceptions.sync import (
    AuthenticationError,
    PublishError,
    StorageError,
    TransportError,
)


class _FakeSource:
    def __init__(self, tariffs=None, error: Exception = None) -> None:
        self._tariffs = tariffs or []
        self._error = error
        self.calls = 0

    def fetch_all(self):
        self.calls += 1
        if self._error:
            raise self._error
        return list(self._tariffs)


class _FakePublisher:
    def __init__(self, targets: List[SpreadsheetTarget], failing: dict = None) -> None:
        self._targets = targets
        self._failing = failing or {}
        self.published: List[tuple] = []

    def list_targets(self):
        return list(self._targets)

    def publish(self, target, rows) -> None:
        if target.spreadsheet_id in self._failing:
            raise PublishError(self._failing[target.spreadsheet_id], spreadsheet_id=target.spreadsheet_id)
        self.published.append((target.spreadsheet_id, rows))


class _SheetsResponse:
    def __init__(self, body: bytes) -> None:
        self.status_code = 200
        self.content = body
        self.text = body.decode()
        self.headers = {}

    def json(self):
        if self.content.startswith(b"<"):
            raise requests.JSONDecodeError("Expecting value", self.text, 0)
        return {}


class _RoutingSheetsSession:
    """Sesión de Sheets: la tabla `broken` responde 200 con HTML de un proxy."""

    def __init__(self, broken: str) -> None:
        self._broken = broken
        self.calls: List[tuple] = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url))
        if f"/{self._broken}/" in url:
            return _SheetsResponse(b"<html>proxy</html>")
        return _SheetsResponse(b"{}")


@pytest.fixture
def targets() -> List[SpreadsheetTarget]:
    return [SpreadsheetTarget("S1"), SpreadsheetTarget("S2")]


def _use_cases(source, repository, publisher, clock=None, timezone_name="UTC") -> TariffsSyncUseCases:
    kwargs = {"clock": clock} if clock else {}
    return TariffsSyncUseCases(
        source=source,
        repository=repository,
        publisher=publisher,
        timezone=timezone_name,
        **kwargs,
    )


class TestSnapshotGrid:
    """Tests para la grilla publicada."""

    def test_header_is_fixed(self) -> None:
        assert build_snapshot_grid([]) == [SNAPSHOT_HEADER]

    def test_rows_are_sorted_and_prices_formatted(self) -> None:
        grid = build_snapshot_grid([
            TariffRow("T2", "Pallet", Decimal("7.5")),
            TariffRow("T1", "Box", Decimal("12")),
        ])

        assert grid == [
            ["Tariff ID", "Name", "Price"],
            ["T1", "Box", "12.00"],
            ["T2", "Pallet", "7.50"],
        ]

    def test_format_price_rounds_to_cents(self) -> None:
        assert format_price(Decimal("15")) == "15.00"
        assert format_price(Decimal("0.125")) == "0.12"


class TestRun:
    """Corrida completa contra el repositorio SQLite."""

    def test_successful_run_publishes_to_every_target(
        self, repository, sample_tariffs, targets, run_date
    ) -> None:
        publisher = _FakePublisher(targets)
        use_cases = _use_cases(_FakeSource(sample_tariffs), repository, publisher)

        result = use_cases.run(run_date)

        assert result.status == SyncStatus.SUCCESS
        assert result.fetched == 2
        assert result.upserted == 2
        assert result.snapshot_rows == 2
        assert result.published_targets == ["S1", "S2"]
        assert publisher.published[0][1] == [
            ["Tariff ID", "Name", "Price"],
            ["T1", "Box", "12.50"],
            ["T2", "Pallet", "7.50"],
        ]
        assert use_cases.stage == SyncStage.IDLE

    def test_second_run_same_day_updates_price(self, repository, make_tariff, targets, run_date) -> None:
        publisher = _FakePublisher(targets)
        _use_cases(_FakeSource([make_tariff("T1", "Box", "12.50")]), repository, publisher).run(run_date)
        _use_cases(_FakeSource([make_tariff("T1", "Box", "15.00")]), repository, publisher).run(run_date)

        assert repository.read_by_date(run_date) == [TariffRow("T1", "Box", Decimal("15.00"))]
        assert publisher.published[-1][1][1] == ["T1", "Box", "15.00"]

    def test_empty_fetch_publishes_header_only(self, repository, targets, run_date) -> None:
        publisher = _FakePublisher(targets)

        result = _use_cases(_FakeSource([]), repository, publisher).run(run_date)

        assert result.status == SyncStatus.SUCCESS
        assert publisher.published[0][1] == [SNAPSHOT_HEADER]

    def test_no_targets_is_success(self, repository, sample_tariffs, run_date) -> None:
        result = _use_cases(_FakeSource(sample_tariffs), repository, _FakePublisher([])).run(run_date)

        assert result.status == SyncStatus.SUCCESS
        assert result.published_targets == []

    def test_run_without_date_uses_today_in_timezone(self, repository, targets) -> None:
        # 22:30 UTC del 1 de mayo ya es 2 de mayo en Moscú
        clock = lambda: datetime(2024, 5, 1, 22, 30, tzinfo=timezone.utc)
        use_cases = _use_cases(
            _FakeSource([]), repository, _FakePublisher(targets), clock=clock, timezone_name="Europe/Moscow"
        )

        result = use_cases.run()

        assert result.run_date == date(2024, 5, 2)

    def test_unknown_timezone_is_rejected(self, repository, targets) -> None:
        with pytest.raises(ValueError):
            _use_cases(_FakeSource([]), repository, _FakePublisher(targets), timezone_name="Mars/Base")


class TestFailures:
    """Etapas fatales y aislamiento por tabla."""

    @pytest.mark.parametrize("error", [AuthenticationError("sin token"), TransportError("500", status=500)])
    def test_fetch_failure_aborts_before_persist(self, error, targets, run_date) -> None:
        repository = MagicMock()
        publisher = _FakePublisher(targets)

        result = _use_cases(_FakeSource(error=error), repository, publisher).run(run_date)

        assert result.status == SyncStatus.FAILED
        assert result.failed_stage == "fetch"
        assert result.error == error.message
        repository.upsert.assert_not_called()
        assert publisher.published == []

    def test_persist_failure_aborts_before_publish(self, sample_tariffs, targets, run_date) -> None:
        repository = MagicMock()
        repository.upsert.side_effect = StorageError("connection refused")
        publisher = _FakePublisher(targets)

        result = _use_cases(_FakeSource(sample_tariffs), repository, publisher).run(run_date)

        assert result.status == SyncStatus.FAILED
        assert result.failed_stage == "persist"
        repository.read_by_date.assert_not_called()
        assert publisher.published == []

    def test_read_failure_aborts_before_publish(self, sample_tariffs, targets, run_date) -> None:
        repository = MagicMock()
        repository.upsert.return_value = 2
        repository.read_by_date.side_effect = StorageError("timeout", stage="read")
        publisher = _FakePublisher(targets)

        result = _use_cases(_FakeSource(sample_tariffs), repository, publisher).run(run_date)

        assert result.status == SyncStatus.FAILED
        assert result.failed_stage == "read"
        assert result.upserted == 2
        assert publisher.published == []

    def test_one_failing_target_does_not_stop_the_others(
        self, repository, sample_tariffs, targets, run_date
    ) -> None:
        publisher = _FakePublisher(targets, failing={"S1": "404 not found"})

        result = _use_cases(_FakeSource(sample_tariffs), repository, publisher).run(run_date)

        assert result.status == SyncStatus.PARTIAL
        assert result.failed_targets == {"S1": "404 not found"}
        assert result.published_targets == ["S2"]
        assert [sid for sid, _ in publisher.published] == ["S2"]
        assert result.failed_stage is None

    def test_non_json_sheet_response_does_not_stop_the_others(
        self, repository, sample_tariffs, run_date
    ) -> None:
        session = _RoutingSheetsSession(broken="bad")
        publisher = GoogleSheetsPublisher(
            [SpreadsheetTarget("bad"), SpreadsheetTarget("good")],
            session=session,
            sleep=lambda _s: None,
        )

        result = _use_cases(_FakeSource(sample_tariffs), repository, publisher).run(run_date)

        assert result.status == SyncStatus.PARTIAL
        assert "bad" in result.failed_targets
        assert result.published_targets == ["good"]
        assert any(m == "PUT" and "/good/" in url for m, url in session.calls)

    def test_unexpected_publisher_error_is_isolated_per_target(
        self, repository, sample_tariffs, targets, run_date
    ) -> None:
        publisher = _FakePublisher(targets)
        original_publish = publisher.publish

        def publish(target, rows):
            if target.spreadsheet_id == "S1":
                raise RuntimeError("boom")
            original_publish(target, rows)

        publisher.publish = publish

        result = _use_cases(_FakeSource(sample_tariffs), repository, publisher).run(run_date)

        assert result.status == SyncStatus.PARTIAL
        assert result.failed_targets == {"S1": "RuntimeError: boom"}
        assert result.published_targets == ["S2"]

    def test_unexpected_fetch_error_fails_the_run(self, targets, run_date) -> None:
        repository = MagicMock()
        use_cases = _use_cases(_FakeSource(error=RuntimeError("bug")), repository, _FakePublisher(targets))

        result = use_cases.run(run_date)

        assert result.status == SyncStatus.FAILED
        assert result.failed_stage == "fetch"
        assert result.error == "RuntimeError: bug"
        assert use_cases.is_running is False
        repository.upsert.assert_not_called()

    def test_run_after_failure_starts_from_scratch(self, repository, sample_tariffs, targets, run_date) -> None:
        source = _FakeSource(error=TransportError("down"))
        use_cases = _use_cases(source, repository, _FakePublisher(targets))
        assert use_cases.run(run_date).status == SyncStatus.FAILED

        source._error = None
        source._tariffs = sample_tariffs
        result = use_cases.run(run_date)

        assert result.status == SyncStatus.SUCCESS
        assert use_cases.is_running is False


class TestConcurrency:
    """Una sola corrida activa a la vez."""

    def test_overlapping_trigger_is_skipped(self, repository, targets, run_date) -> None:
        started = threading.Event()
        release = threading.Event()

        class _SlowSource(_FakeSource):
            def fetch_all(self):
                self.calls += 1
                started.set()
                release.wait(timeout=5)
                return []

        source = _SlowSource()
        use_cases = _use_cases(source, repository, _FakePublisher(targets))
        results = []
        worker = threading.Thread(target=lambda: results.append(use_cases.run(run_date)))
        worker.start()
        assert started.wait(timeout=5)

        skipped = use_cases.run(run_date)
        release.set()
        worker.join(timeout=5)

        assert skipped.status == SyncStatus.SKIPPED
        assert results[0].status == SyncStatus.SUCCESS
        assert source.calls == 1
