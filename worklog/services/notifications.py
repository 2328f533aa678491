"""
In-app notification service.

Emission is fire-and-forget: every public emitter swallows and logs its own
failures so the primary operation never sees them.
"""
import uuid
from datetime import date, datetime
from typing import Optional, Dict, Any, List

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import NotFound
from ..models.models import DailyLog, Notification


logger = structlog.get_logger(__name__)

TEMPLATE_DUPLICATE = "log_duplicate"
TEMPLATE_APPROVED = "log_approved"
TEMPLATE_MISSING_LOG = "log_missing_reminder"
TEMPLATE_PENDING_APPROVAL = "pending_approval_reminder"


def create_notification(
    db: Session,
    user_id: uuid.UUID,
    template_key: str,
    payload_json: Optional[Dict[str, Any]] = None,
    channel: str = "in_app",
) -> Notification:
    notification = Notification(
        user_id=user_id,
        channel=channel,
        template_key=template_key,
        payload_json=payload_json,
        status="pending",
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def notify(
    db: Session,
    user_id: uuid.UUID,
    template_key: str,
    payload: Optional[Dict[str, Any]] = None,
) -> Optional[Notification]:
    """
    Best-effort notification.

    Returns the stored notification, or None when notifications are disabled
    or delivery failed. Never raises.
    """
    if not settings.enable_notifications:
        return None
    try:
        return create_notification(db, user_id, template_key, payload)
    except Exception as e:
        logger.warning("notification_failed", template_key=template_key, user_id=str(user_id), error=str(e))
        try:
            db.rollback()
        except SQLAlchemyError:
            pass
        return None


def notify_duplicate_log(
    db: Session,
    user_id: uuid.UUID,
    log_date: date,
    project: str,
    existing_log_id: Optional[uuid.UUID] = None,
) -> Optional[Notification]:
    payload = {
        "title": "Duplicate daily log",
        "message": f"A log for {project} on {log_date.isoformat()} already exists",
        "date": log_date.isoformat(),
        "project": project,
        "existing_log_id": str(existing_log_id) if existing_log_id else None,
    }
    return notify(db, user_id, TEMPLATE_DUPLICATE, payload)


def notify_log_approved(db: Session, log: DailyLog) -> Optional[Notification]:
    payload = {
        "title": "Daily log approved",
        "message": f"Your log for {log.project} on {log.date.isoformat()} was approved",
        "log_id": str(log.id),
        "date": log.date.isoformat(),
        "project": log.project,
        "approved_by": str(log.approved_by) if log.approved_by else None,
    }
    return notify(db, log.team_leader_id, TEMPLATE_APPROVED, payload)


def list_notifications(
    db: Session,
    user_id: uuid.UUID,
    unread_only: bool = False,
    limit: int = 50,
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.status != "read")
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def mark_read(db: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
    if not notification:
        raise NotFound("Notification not found")
    if notification.status != "read":
        notification.status = "read"
        notification.read_at = datetime.utcnow()
        db.commit()
        db.refresh(notification)
    return notification
