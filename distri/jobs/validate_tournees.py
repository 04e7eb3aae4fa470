# CLI entry point for the daily tour validation (cron: distri-validate-tournees)

import sys

from distri.core.logging import configure_logging, get_logger
from distri.crud.participation_crud import SqlParticipationStore
from distri.database import SessionLocal
from distri.services.clock import today_local
from distri.services.status_batch import validate_tournees

logger = get_logger(__name__)


def main() -> int:
    configure_logging()
    db = SessionLocal()
    try:
        report = validate_tournees(SqlParticipationStore(db), today_local())
    finally:
        db.close()
    print(report.model_dump_json(indent=2))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
