import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth.policy import Actor, Capability, authorize, has_capability, scoped_owner
from ..auth.security import get_current_actor, require_capability
from ..db import get_db
from ..documents.log_pdf import build_log_pdf
from ..models.models import User
from ..schemas.logs import AuditEntryOut, LogCreate, LogOut, LogUpdate
from ..services import logs as service
from ..storage.local_provider import get_storage
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/logs", tags=["logs"])


def _load(db: Session, log_id: uuid.UUID, actor: Actor, capability: Capability):
    log = service.get_log(db, log_id)
    authorize(actor, capability, owner_id=log.team_leader_id)
    return log


@router.get("", response_model=List[LogOut])
def list_logs(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project: Optional[str] = None,
    status: Optional[str] = None,
    team_leader: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.LOG_READ)),
):
    return service.list_logs(
        db,
        start_date=start_date,
        end_date=end_date,
        project=project,
        status=status,
        team_leader_id=scoped_owner(actor, team_leader),
        search=search,
    )


@router.get("/mine", response_model=List[LogOut])
def my_logs(
    db: Session = Depends(get_db),
    # Only roles that author logs have logs of their own
    actor: Actor = Depends(require_capability(Capability.LOG_CREATE)),
):
    return service.list_logs(db, team_leader_id=actor.id)


@router.get("/{log_id}", response_model=LogOut)
def get_log(log_id: uuid.UUID, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return _load(db, log_id, actor, Capability.LOG_READ)


@router.get("/{log_id}/history", response_model=List[AuditEntryOut])
def log_history(log_id: uuid.UUID, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    log = _load(db, log_id, actor, Capability.LOG_READ)
    return service.log_history(db, log)


@router.post("", response_model=LogOut, status_code=201)
def create_log(
    payload: LogCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.LOG_CREATE)),
):
    return service.create_log(db, actor, payload.model_dump(exclude_unset=True))


@router.put("/{log_id}", response_model=LogOut)
def update_log(
    log_id: uuid.UUID,
    payload: LogUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    log = _load(db, log_id, actor, Capability.LOG_EDIT)
    return service.update_log(db, log, actor, payload.model_dump(exclude_unset=True))


@router.patch("/{log_id}/submit", response_model=LogOut)
def submit_log(log_id: uuid.UUID, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    log = _load(db, log_id, actor, Capability.LOG_SUBMIT)
    return service.submit_log(db, log, actor)


@router.patch("/{log_id}/approve", response_model=LogOut)
def approve_log(log_id: uuid.UUID, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    log = _load(db, log_id, actor, Capability.LOG_APPROVE)
    return service.approve_log(db, log, actor)


@router.delete("/{log_id}")
def delete_log(
    log_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    storage: StorageProvider = Depends(get_storage),
):
    log = _load(db, log_id, actor, Capability.LOG_DELETE)
    allow_approved = has_capability(actor, Capability.LOG_DELETE_APPROVED)
    service.delete_log(db, log, actor, allow_approved=allow_approved, storage=storage)
    return {"message": "Log deleted successfully"}


@router.post("/{log_id}/certificate", response_model=LogOut)
def upload_certificate(
    log_id: uuid.UUID,
    file: UploadFile = File(...),
    document_type: Optional[str] = Form(None, alias="type"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    storage: StorageProvider = Depends(get_storage),
):
    log = _load(db, log_id, actor, Capability.LOG_ATTACH)
    return service.attach_certificate(
        db, log, actor, file.file, file.filename, storage, document_type=document_type,
    )


@router.get("/{log_id}/export-pdf")
def export_log_pdf(log_id: uuid.UUID, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    log = _load(db, log_id, actor, Capability.LOG_EXPORT)
    leader = db.query(User).filter(User.id == log.team_leader_id).first()
    pdf = build_log_pdf(log, team_leader_name=(leader.full_name or leader.username) if leader else None)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="daily-log-{log.id}.pdf"'},
    )
