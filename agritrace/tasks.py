# agritrace/tasks.py
import logging
from datetime import date, timedelta
from apscheduler.schedulers.background import BackgroundScheduler
from agritrace.crud import expire_certifications, get_active_certifications
from agritrace.settings import settings

log = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 30


def check_certification_expiry(today: date | None = None) -> int:
    log.info("Running certification expiry check...")
    today = today or date.today()
    expired = expire_certifications(today)
    if expired:
        log.info("Marked %d certifications as expired", expired)

    horizon = today + timedelta(days=EXPIRY_WARNING_DAYS)
    for c in get_active_certifications():
        if c.expiry_date <= horizon:
            log.info("Certification %s expires on %s", c.certificate_number, c.expiry_date.isoformat())
    return expired


scheduler = BackgroundScheduler()
scheduler.add_job(check_certification_expiry, "interval", minutes=settings.EXPIRY_CHECK_MINUTES)
