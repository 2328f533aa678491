"""
Background reminders.

``ReminderScheduler`` wakes every ``interval_s`` seconds on its own daemon
thread. After ``reminder_hour`` (local time in ``tz``) it reminds team
leaders who have not logged today and tells managers how many logs wait for
approval. Each recipient gets a given reminder at most once per day.
"""
import threading
from datetime import date, datetime
from typing import Callable, Dict, Optional

import pytz
import structlog
from sqlalchemy.orm import Session

from ..models.models import DailyLog, Notification, User, ROLE_MANAGER, ROLE_TEAM_LEADER
from ..models.states import LogStatus
from .notifications import TEMPLATE_MISSING_LOG, TEMPLATE_PENDING_APPROVAL, notify


logger = structlog.get_logger(__name__)


def _already_sent(db: Session, user_id, template_key: str, day: date) -> bool:
    return db.query(Notification.id).filter(
        Notification.user_id == user_id,
        Notification.template_key == template_key,
        Notification.payload_json["date"].as_string() == day.isoformat(),
    ).first() is not None


class ReminderScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_s: int = 900,
        reminder_hour: int = 17,
        tz: str = "UTC",
    ):
        self.session_factory = session_factory
        self.interval_s = interval_s
        self.reminder_hour = reminder_hour
        self.tz = pytz.timezone(tz)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="reminder-scheduler", daemon=True)
        self._thread.start()
        logger.info("scheduler_started", interval_s=self.interval_s, reminder_hour=self.reminder_hour)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("scheduler_stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.error("scheduler_pass_failed", error=str(e), exc_info=e)
            self._stop.wait(self.interval_s)

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(pytz.UTC)
        if now.tzinfo is None:
            now = pytz.UTC.localize(now)
        return now.astimezone(self.tz)

    def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Send whatever reminders are due at ``now``; returns how many went out per template."""
        sent = {TEMPLATE_MISSING_LOG: 0, TEMPLATE_PENDING_APPROVAL: 0}
        local = self.local_now(now)
        if local.hour < self.reminder_hour:
            return sent
        today = local.date()

        db = self.session_factory()
        try:
            leaders = db.query(User).filter(User.role == ROLE_TEAM_LEADER, User.is_active.is_(True)).all()
            logged = {
                row[0] for row in db.query(DailyLog.team_leader_id).filter(DailyLog.date == today).distinct()
            }
            for leader in leaders:
                if leader.id in logged or _already_sent(db, leader.id, TEMPLATE_MISSING_LOG, today):
                    continue
                payload = {
                    "title": "Daily log missing",
                    "message": f"You have not submitted a daily log for {today.strftime('%d/%m/%Y')}",
                    "date": today.isoformat(),
                }
                if notify(db, leader.id, TEMPLATE_MISSING_LOG, payload):
                    sent[TEMPLATE_MISSING_LOG] += 1

            pending = db.query(DailyLog).filter(DailyLog.status == LogStatus.SUBMITTED.value).count()
            if pending:
                managers = db.query(User).filter(User.role == ROLE_MANAGER, User.is_active.is_(True)).all()
                for manager in managers:
                    if _already_sent(db, manager.id, TEMPLATE_PENDING_APPROVAL, today):
                        continue
                    payload = {
                        "title": "Logs awaiting approval",
                        "message": f"{pending} daily log(s) are waiting for your approval",
                        "date": today.isoformat(),
                        "count": pending,
                    }
                    if notify(db, manager.id, TEMPLATE_PENDING_APPROVAL, payload):
                        sent[TEMPLATE_PENDING_APPROVAL] += 1
        finally:
            db.close()

        if any(sent.values()):
            logger.info("reminders_sent", date=today.isoformat(), **sent)
        return sent
