import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.policy import Actor
from ..auth.security import get_current_actor
from ..db import get_db
from ..schemas.notifications import NotificationOut
from ..services.notifications import list_notifications, mark_read


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def my_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return list_notifications(db, actor.id, unread_only=unread_only, limit=limit)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return mark_read(db, actor.id, notification_id)
