"""
Daily log lifecycle.

Validation, duplicate detection, status transitions and their side effects.
Callers are expected to have passed the authorization gate already; nothing
here looks at roles.

Every status change is a single conditional UPDATE keyed on the expected
current status, so a concurrent transition makes the statement match zero
rows instead of overwriting it.
"""
import uuid
from datetime import date, datetime
from typing import Any, BinaryIO, Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.policy import Actor
from ..config import settings
from ..errors import DuplicateLog, InvalidTransition, LogLocked, NotFound, ValidationError
from ..models import states
from ..models.models import AuditLog, DailyLog, utcnow
from ..models.states import EDITABLE_STATUSES, LogStatus
from ..storage.local_provider import attachment_key
from ..storage.provider import StorageProvider
from .audit import compute_diff, get_audit_logs, record_audit
from .notifications import notify_duplicate_log, notify_log_approved


logger = structlog.get_logger(__name__)

ENTITY = "daily_log"

LOG_FIELDS = ("date", "project", "employees", "start_time", "end_time", "work_description")
REQUIRED_MESSAGES = {
    "date": "Date is required",
    "project": "Project is required",
    "employees": "At least one employee is required",
    "start_time": "Start time is required",
    "end_time": "End time is required",
    "work_description": "Work description is required",
}

DOCUMENT_TYPES = ("delivery_note", "receipt", "invoice", "other")
DEFAULT_DOCUMENT_TYPE = "delivery_note"


def _snapshot(log: DailyLog) -> Dict[str, Any]:
    return {f: getattr(log, f) for f in LOG_FIELDS + ("status", "delivery_certificate")}


def _normalize(data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    """Trim and check the editable fields.

    With ``partial`` only the keys present in ``data`` are considered; a
    present key may still not be blank.
    """
    errors = {}
    out = {}
    for field in LOG_FIELDS:
        if field not in data:
            if not partial:
                errors[field] = REQUIRED_MESSAGES[field]
            continue
        value = data[field]
        if field == "employees":
            value = [str(n).strip() for n in (value or []) if n is not None and str(n).strip()]
        elif isinstance(value, str):
            value = value.strip()
        if value is None or value == "" or value == []:
            errors[field] = REQUIRED_MESSAGES[field]
            continue
        out[field] = value
    if errors:
        raise ValidationError(errors)
    return out


def _check_hours(start_time, end_time) -> None:
    if end_time <= start_time:
        raise ValidationError({"end_time": "End time must be after start time"})


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def find_duplicate(
    db: Session,
    team_leader_id: uuid.UUID,
    log_date: date,
    project: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> Optional[DailyLog]:
    query = db.query(DailyLog).filter(
        DailyLog.team_leader_id == team_leader_id,
        DailyLog.date == log_date,
        DailyLog.project == project,
    )
    if exclude_id is not None:
        query = query.filter(DailyLog.id != exclude_id)
    return query.first()


def _reject_duplicate(db: Session, actor: Actor, log_date: date, project: str, existing: Optional[DailyLog]):
    existing_id = existing.id if existing else None
    logger.info("duplicate_log_rejected", team_leader_id=str(actor.id), date=log_date.isoformat(), project=project)
    notify_duplicate_log(db, actor.id, log_date, project, existing_id)
    raise DuplicateLog(
        f"A log for project '{project}' on {log_date.isoformat()} already exists",
        existing_log_id=str(existing_id) if existing_id else None,
    )


def _raise_for_missed_write(db: Session, log_id: uuid.UUID) -> None:
    """A conditional write matched nothing; explain why from the current row."""
    db.rollback()
    current = db.query(DailyLog).filter(DailyLog.id == log_id).first()
    if current is None:
        raise NotFound("Log not found")
    if states.is_locked(current.state):
        raise LogLocked()
    raise InvalidTransition(f"Log is {current.status}", current_status=current.status)


def get_log(db: Session, log_id: uuid.UUID) -> DailyLog:
    log = db.query(DailyLog).filter(DailyLog.id == log_id).first()
    if not log:
        raise NotFound("Log not found")
    return log


def list_logs(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project: Optional[str] = None,
    status: Optional[str] = None,
    team_leader_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
) -> List[DailyLog]:
    query = db.query(DailyLog)
    if start_date:
        query = query.filter(DailyLog.date >= start_date)
    if end_date:
        query = query.filter(DailyLog.date <= end_date)
    if project and project.strip():
        query = query.filter(DailyLog.project == project.strip())
    if status:
        if status not in [s.value for s in LogStatus]:
            raise ValidationError({"status": f"Unknown status '{status}'"})
        query = query.filter(DailyLog.status == status)
    if team_leader_id:
        query = query.filter(DailyLog.team_leader_id == team_leader_id)
    if search:
        query = query.filter(DailyLog.work_description.ilike(f"%{_escape_like(search)}%", escape="\\"))
    return query.order_by(DailyLog.date.desc(), DailyLog.created_at.desc()).all()


def create_log(db: Session, actor: Actor, data: Dict[str, Any]) -> DailyLog:
    values = _normalize(data, partial=False)
    _check_hours(values["start_time"], values["end_time"])

    existing = find_duplicate(db, actor.id, values["date"], values["project"])
    if existing:
        _reject_duplicate(db, actor, values["date"], values["project"], existing)

    log = DailyLog(**values, team_leader_id=actor.id, **states.state_columns(states.Draft()))
    db.add(log)
    try:
        db.flush()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same key
        db.rollback()
        existing = find_duplicate(db, actor.id, values["date"], values["project"])
        if existing is None:
            raise
        _reject_duplicate(db, actor, values["date"], values["project"], existing)

    record_audit(db, ENTITY, log.id, "CREATE", actor, changes=_snapshot(log))
    db.commit()
    db.refresh(log)
    logger.info("log_created", log_id=str(log.id), team_leader_id=str(actor.id))
    return log


def update_log(db: Session, log: DailyLog, actor: Actor, data: Dict[str, Any]) -> DailyLog:
    """Apply the provided fields to a draft or submitted log."""
    if states.is_locked(log.state):
        raise LogLocked()
    changes = _normalize({k: v for k, v in data.items() if k in LOG_FIELDS}, partial=True)
    _check_hours(changes.get("start_time", log.start_time), changes.get("end_time", log.end_time))

    new_date = changes.get("date", log.date)
    new_project = changes.get("project", log.project)
    if (new_date, new_project) != (log.date, log.project):
        existing = find_duplicate(db, log.team_leader_id, new_date, new_project, exclude_id=log.id)
        if existing:
            _reject_duplicate(db, actor, new_date, new_project, existing)

    if not changes:
        return log

    before = _snapshot(log)
    try:
        rows = db.query(DailyLog).filter(
            DailyLog.id == log.id,
            DailyLog.status.in_(EDITABLE_STATUSES),
        ).update(changes, synchronize_session=False)
    except IntegrityError:
        db.rollback()
        existing = find_duplicate(db, log.team_leader_id, new_date, new_project, exclude_id=log.id)
        if existing is None:
            raise
        _reject_duplicate(db, actor, new_date, new_project, existing)
    if rows == 0:
        _raise_for_missed_write(db, log.id)

    after = {**before, **changes}
    record_audit(db, ENTITY, log.id, "UPDATE", actor, changes=compute_diff(before, after))
    db.commit()
    db.refresh(log)
    return log


def _transition(db: Session, log: DailyLog, expected: LogStatus, target: states.LogState) -> None:
    rows = db.query(DailyLog).filter(
        DailyLog.id == log.id,
        DailyLog.status == expected.value,
    ).update(states.state_columns(target), synchronize_session=False)
    if rows == 0:
        db.rollback()
        current = db.query(DailyLog).filter(DailyLog.id == log.id).first()
        if current is None:
            raise NotFound("Log not found")
        raise InvalidTransition(
            f"Log is already {current.status}" if expected == LogStatus.DRAFT else "Only submitted logs can be approved",
            current_status=current.status,
        )


def submit_log(db: Session, log: DailyLog, actor: Actor) -> DailyLog:
    target = states.submit(log.state)
    _transition(db, log, LogStatus.DRAFT, target)
    record_audit(db, ENTITY, log.id, "SUBMIT", actor, changes={"status": {"before": log.status, "after": target.status.value}})
    db.commit()
    db.refresh(log)
    logger.info("log_submitted", log_id=str(log.id))
    return log


def approve_log(db: Session, log: DailyLog, actor: Actor, now: Optional[datetime] = None) -> DailyLog:
    target = states.approve(log.state, actor.id, now or utcnow())
    _transition(db, log, LogStatus.SUBMITTED, target)
    record_audit(db, ENTITY, log.id, "APPROVE", actor, changes=states.state_columns(target))
    db.commit()
    db.refresh(log)
    logger.info("log_approved", log_id=str(log.id), approved_by=str(actor.id))
    notify_log_approved(db, log)
    return log


def _discard_file(storage: Optional[StorageProvider], key: Optional[str]) -> None:
    if not storage or not key:
        return
    try:
        storage.delete(key)
    except Exception as e:
        logger.warning("attachment_cleanup_failed", key=key, error=str(e))


def delete_log(
    db: Session,
    log: DailyLog,
    actor: Actor,
    allow_approved: bool = False,
    storage: Optional[StorageProvider] = None,
) -> None:
    if not allow_approved and states.is_locked(log.state):
        raise LogLocked("Approved logs cannot be deleted")
    log_id = log.id
    query = db.query(DailyLog).filter(DailyLog.id == log_id)
    if not allow_approved:
        query = query.filter(DailyLog.status.in_(EDITABLE_STATUSES))
    attachment = (log.delivery_certificate or {}).get("path")
    snapshot = _snapshot(log)
    rows = query.delete(synchronize_session=False)
    if rows == 0:
        _raise_for_missed_write(db, log_id)
    record_audit(db, ENTITY, log_id, "DELETE", actor, changes=snapshot)
    db.commit()
    logger.info("log_deleted", log_id=str(log_id), actor_id=str(actor.id))
    _discard_file(storage, attachment)


def attach_certificate(
    db: Session,
    log: DailyLog,
    actor: Actor,
    stream: BinaryIO,
    original_name: str,
    storage: StorageProvider,
    document_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DailyLog:
    """Store an uploaded document and record it on the log, replacing any previous one."""
    if states.is_locked(log.state):
        raise LogLocked()
    document_type = document_type or DEFAULT_DOCUMENT_TYPE
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError({"type": f"Type must be one of: {', '.join(DOCUMENT_TYPES)}"})
    if not original_name:
        raise ValidationError({"file": "A file is required"})

    now = now or utcnow()
    key = attachment_key(str(log.id), original_name, now)
    size = storage.save(stream, key)
    if size > settings.max_upload_bytes:
        _discard_file(storage, key)
        raise ValidationError({"file": "File is too large"})

    certificate = {
        "path": key,
        "original_name": original_name,
        "type": document_type,
        "uploaded_at": now.isoformat(),
    }
    previous = (log.delivery_certificate or {}).get("path")
    rows = db.query(DailyLog).filter(
        DailyLog.id == log.id,
        DailyLog.status.in_(EDITABLE_STATUSES),
    ).update({"delivery_certificate": certificate}, synchronize_session=False)
    if rows == 0:
        _discard_file(storage, key)
        _raise_for_missed_write(db, log.id)

    record_audit(db, ENTITY, log.id, "ATTACH", actor, changes={"delivery_certificate": certificate})
    db.commit()
    db.refresh(log)
    if previous and previous != key:
        _discard_file(storage, previous)
    return log


def log_history(db: Session, log: DailyLog, limit: int = 100) -> List[AuditLog]:
    return get_audit_logs(db, ENTITY, log.id, limit=limit)
