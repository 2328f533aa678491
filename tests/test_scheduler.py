from datetime import date, datetime, time

import pytz

from worklog.auth.security import actor_for
from worklog.models.models import Notification
from worklog.services.logs import create_log, submit_log
from worklog.services.scheduler import ReminderScheduler


EVENING = pytz.UTC.localize(datetime(2025, 1, 6, 18, 0))
MORNING = pytz.UTC.localize(datetime(2025, 1, 6, 9, 0))


def _log(db, user, project="Harbor Bridge"):
    return create_log(db, actor_for(user), {
        "date": date(2025, 1, 6),
        "project": project,
        "employees": ["Dana Cohen"],
        "start_time": time(8, 0),
        "end_time": time(16, 0),
        "work_description": "Formwork",
    })


def _templates(db, user):
    return sorted(n.template_key for n in db.query(Notification).filter(Notification.user_id == user.id))


def test_nothing_before_reminder_hour(session_factory, db, leader):
    scheduler = ReminderScheduler(session_factory, reminder_hour=17, tz="UTC")

    assert scheduler.run_once(MORNING) == {"log_missing_reminder": 0, "pending_approval_reminder": 0}
    assert _templates(db, leader) == []


def test_reminds_leaders_without_a_log_once_per_day(session_factory, db, leader, other_leader):
    _log(db, other_leader)
    scheduler = ReminderScheduler(session_factory, reminder_hour=17, tz="UTC")

    sent = scheduler.run_once(EVENING)
    assert sent["log_missing_reminder"] == 1
    assert _templates(db, leader) == ["log_missing_reminder"]
    assert _templates(db, other_leader) == []

    assert scheduler.run_once(EVENING)["log_missing_reminder"] == 0
    assert _templates(db, leader) == ["log_missing_reminder"]


def test_managers_hear_about_pending_approvals(session_factory, db, leader, manager):
    log = _log(db, leader)
    scheduler = ReminderScheduler(session_factory, reminder_hour=17, tz="UTC")
    assert scheduler.run_once(EVENING)["pending_approval_reminder"] == 0

    submit_log(db, log, actor_for(leader))
    assert scheduler.run_once(EVENING)["pending_approval_reminder"] == 1
    note = db.query(Notification).filter(Notification.user_id == manager.id).one()
    assert note.payload_json["count"] == 1
    assert scheduler.run_once(EVENING)["pending_approval_reminder"] == 0


def test_local_day_follows_timezone(session_factory, db, leader):
    # 23:30 UTC on the 5th is already the 6th in Jerusalem
    scheduler = ReminderScheduler(session_factory, reminder_hour=0, tz="Asia/Jerusalem")
    _log(db, leader)

    late = pytz.UTC.localize(datetime(2025, 1, 5, 23, 30))
    assert scheduler.run_once(late)["log_missing_reminder"] == 0


def test_start_and_stop(session_factory):
    scheduler = ReminderScheduler(session_factory, interval_s=3600, reminder_hour=23, tz="UTC")

    scheduler.start()
    assert scheduler.running
    scheduler.stop()
    assert not scheduler.running


def test_yesterdays_reminder_does_not_block_today(session_factory, db, leader):
    scheduler = ReminderScheduler(session_factory, reminder_hour=17, tz="UTC")
    assert scheduler.run_once(EVENING)["log_missing_reminder"] == 1

    next_evening = pytz.UTC.localize(datetime(2025, 1, 7, 18, 0))
    assert scheduler.run_once(next_evening)["log_missing_reminder"] == 1
    dates = sorted(n.payload_json["date"] for n in db.query(Notification).filter(Notification.user_id == leader.id))
    assert dates == ["2025-01-06", "2025-01-07"]
