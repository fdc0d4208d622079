"""
CLI: API de tarifas -> Postgres -> Google Sheets.

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) o con --schedule como proceso dedicado.
  - La API también puede programar el job (SYNC_ENABLED=true); no usar ambos a la vez.

Variables de entorno requeridas:
  - WB_API_TOKEN
  - DATABASE_URL (o DATABASE_HOST/PORT/NAME/USER/PASSWORD)
  - GOOGLE_SHEETS_CREDENTIALS o GOOGLE_SHEETS_CREDENTIALS_FILE
  - GOOGLE_SHEETS_TARGETS

Ejecución:
  python scripts/run_tariffs_sync.py
  python scripts/run_tariffs_sync.py --date 2024-05-01
  python scripts/run_tariffs_sync.py --schedule
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `app/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env antes de instanciar settings.
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from app.application.use_cases.tariffs_sync_use_cases import SyncStatus
from app.core.bootstrap import build_from_settings
from app.core.config import settings
from app.core.scheduler import build_scheduler
from app.infrastructure.database.session import close_db, init_db
from app.shared.utils.datetime_utils import DateTimeUtils


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync diario de tarifas")
    parser.add_argument(
        "--date",
        default=None,
        help="Fecha de la corrida (YYYY-MM-DD). Por defecto: hoy en SYNC_TIMEZONE.",
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Queda en primer plano y ejecuta el sync cada día a SYNC_CRON_HOUR:SYNC_CRON_MINUTE.",
    )
    args = parser.parse_args()

    run_date = None
    if args.date:
        try:
            run_date = DateTimeUtils.parse_date(args.date)
        except ValueError:
            raise SystemExit(f"Fecha inválida: {args.date} (formato esperado YYYY-MM-DD)")

    use_cases, engine = build_from_settings(settings)
    init_db(engine)

    try:
        if args.schedule:
            scheduler = build_scheduler(use_cases, settings, blocking=True)
            logger.info("Scheduler iniciado (Ctrl+C para detener)")
            try:
                scheduler.start()
            except (KeyboardInterrupt, SystemExit):
                logger.info("Scheduler detenido")
            return 0

        logger.info("Iniciando sync de tarifas...")
        result = use_cases.run(run_date)
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2, default=str))
        return 1 if result.status == SyncStatus.FAILED else 0
    finally:
        close_db(engine)


if __name__ == "__main__":
    raise SystemExit(main())
