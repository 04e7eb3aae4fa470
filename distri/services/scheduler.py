# Daily tour validation inside the API process (APScheduler, Europe/Paris by default)

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from distri.core import config
from distri.core.logging import get_logger
from distri.crud.participation_crud import SqlParticipationStore
from distri.database import SessionLocal
from distri.services.clock import today_local
from distri.services.status_batch import validate_tournees

logger = get_logger(__name__)

JOB_ID = "validate_tournees"


def run_validation() -> None:
    db = SessionLocal()
    try:
        validate_tournees(SqlParticipationStore(db), today_local())
    finally:
        db.close()


class ValidationScheduler:
    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone=config.TIMEZONE)

    def start(self) -> None:
        self.scheduler.add_job(
            run_validation,
            CronTrigger(hour=config.VALIDATION_CRON_HOUR, minute=0),
            id=JOB_ID,
            name="Validation des tournées",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("scheduler_started", job=JOB_ID, hour=config.VALIDATION_CRON_HOUR, timezone=config.TIMEZONE)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("scheduler_stopped")
