import datetime as dt
import uuid
from typing import Any, Dict, List, Optional

import pytz
from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError, field_validator

from ..config import settings


_datetime = TypeAdapter(dt.datetime)


def to_local(value: dt.datetime) -> dt.datetime:
    """Naive local wall-clock time for ``value``.

    Aware values (``...Z``, ``...+02:00``) are converted to ``TZ_DEFAULT``;
    naive values are taken as already local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.timezone(settings.tz_default)).replace(tzinfo=None)


def _as_datetime(v) -> Optional[dt.datetime]:
    if isinstance(v, dt.datetime):
        return v
    if isinstance(v, str) and len(v) > 10 and v[10] in ("T", " "):
        try:
            return _datetime.validate_python(v)
        except PydanticValidationError:
            return None
    return None


class LogBase(BaseModel):
    date: Optional[dt.date] = None
    project: Optional[str] = None
    employees: Optional[List[str]] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    work_description: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _local_date(cls, v):
        # Browsers send toISOString() values, i.e. UTC
        parsed = _as_datetime(v)
        return to_local(parsed).date() if parsed is not None else v

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _local_time(cls, v):
        parsed = _as_datetime(v)
        return to_local(parsed).time() if parsed is not None else v

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_time(cls, v):
        if v is None or v.tzinfo is None:
            return v
        # A bare time with an offset is placed on today's date to convert it
        return to_local(dt.datetime.combine(dt.date.today(), v)).time()


class LogCreate(LogBase):
    pass


class LogUpdate(LogBase):
    pass


class CertificateOut(BaseModel):
    path: str
    original_name: str
    type: str
    uploaded_at: str


class LogOut(BaseModel):
    id: uuid.UUID
    date: dt.date
    project: str
    employees: List[str]
    start_time: dt.time
    end_time: dt.time
    work_description: str
    delivery_certificate: Optional[CertificateOut] = None
    status: str
    team_leader_id: uuid.UUID
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class AuditEntryOut(BaseModel):
    id: uuid.UUID
    action: str
    actor_id: Optional[uuid.UUID] = None
    actor_role: Optional[str] = None
    changes_json: Optional[Dict[str, Any]] = None
    timestamp_utc: dt.datetime

    class Config:
        from_attributes = True
