#!/usr/bin/env python
"""
Script helper para migraciones de la tabla de tarifas con Alembic.

Uso:
    python scripts/migrate.py upgrade          # Aplicar migraciones pendientes
    python scripts/migrate.py upgrade --sql    # Solo imprimir el DDL (modo offline)
    python scripts/migrate.py downgrade        # Revertir ultima migracion
    python scripts/migrate.py downgrade base   # Revertir todo
    python scripts/migrate.py current          # Ver version actual
    python scripts/migrate.py history          # Ver historial de migraciones
"""
import argparse
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from loguru import logger


# Directorio raiz del API
API_DIR = Path(__file__).resolve().parent.parent


def get_alembic_config() -> Config:
    """Config de Alembic apuntando a api/alembic.ini y api/alembic/."""
    config = Config(str(API_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(API_DIR / "alembic"))
    return config


def main() -> int:
    parser = argparse.ArgumentParser(description="Migraciones de base de datos (Alembic)")
    sub = parser.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upgrade", help="Aplicar migraciones (default: head)")
    up.add_argument("target", nargs="?", default="head")
    up.add_argument("--sql", action="store_true", help="Imprime el SQL sin ejecutarlo")

    down = sub.add_parser("downgrade", help="Revertir migraciones (default: -1)")
    down.add_argument("target", nargs="?", default="-1")

    sub.add_parser("current", help="Ver version actual")
    sub.add_parser("history", help="Ver historial de migraciones")

    args = parser.parse_args()
    config = get_alembic_config()

    logger.info(f"Alembic: {args.command}")
    if args.command == "upgrade":
        command.upgrade(config, args.target, sql=args.sql)
    elif args.command == "downgrade":
        command.downgrade(config, args.target)
    elif args.command == "current":
        command.current(config, verbose=True)
    elif args.command == "history":
        command.history(config, verbose=True)
    return 0


if __name__ == "__main__":
    sys.path.insert(0, str(API_DIR))
    sys.exit(main())
