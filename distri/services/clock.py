# "Today" in the business timezone; every date rule compares calendar dates only

from datetime import date, datetime
from zoneinfo import ZoneInfo

from distri.core import config


def today_local() -> date:
    return datetime.now(ZoneInfo(config.TIMEZONE)).date()
