"""
Scheduler diario del sync de tarifas (APScheduler).

Un solo job con CronTrigger a hora fija en la zona horaria configurada.
max_instances=1 + coalesce=True: si un disparo llega con una corrida aún
activa, se omite en lugar de solaparse.
misfire_grace_time: un disparo demorado (p.ej. el proceso estaba ocupado o
reiniciando) se ejecuta igual si llega dentro de la ventana configurada.
"""
from typing import Union

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from app.application.use_cases.tariffs_sync_use_cases import TariffsSyncUseCases
from app.core.config import Settings

TARIFFS_SYNC_JOB_ID = "tariffs_sync"


def build_scheduler(
    use_cases: TariffsSyncUseCases,
    settings: Settings,
    *,
    blocking: bool = False,
) -> Union[BackgroundScheduler, BlockingScheduler]:
    """
    Crea el scheduler (sin arrancarlo) con el job diario registrado.

    Args:
        use_cases: Orquestador ya construido
        settings: Configuracion (hora, minuto, zona horaria)
        blocking: True para scripts (BlockingScheduler), False dentro de la API
    """
    scheduler_cls = BlockingScheduler if blocking else BackgroundScheduler
    scheduler = scheduler_cls(timezone=settings.SYNC_TIMEZONE)
    scheduler.add_job(
        use_cases.run,
        trigger=CronTrigger(
            hour=settings.SYNC_CRON_HOUR,
            minute=settings.SYNC_CRON_MINUTE,
            timezone=settings.SYNC_TIMEZONE,
        ),
        id=TARIFFS_SYNC_JOB_ID,
        name="Sync diario de tarifas",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.SYNC_MISFIRE_GRACE_S,
        replace_existing=True,
    )
    logger.info(
        f"Job '{TARIFFS_SYNC_JOB_ID}' programado a las "
        f"{settings.SYNC_CRON_HOUR:02d}:{settings.SYNC_CRON_MINUTE:02d} ({settings.SYNC_TIMEZONE})"
    )
    return scheduler
