"""
Daily log status as a tagged variant.

A log is exactly one of ``Draft``, ``Submitted`` or ``Approved``; only the
approved variant carries the approver and approval time, so an approved log
without attribution cannot be expressed. The flat ``status`` /
``approved_by`` / ``approved_at`` columns are derived from the variant with
``state_columns`` and read back with ``state_from_columns``.
"""
import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..errors import InvalidTransition


class LogStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"


@dataclass(frozen=True)
class Draft:
    status = LogStatus.DRAFT


@dataclass(frozen=True)
class Submitted:
    status = LogStatus.SUBMITTED


@dataclass(frozen=True)
class Approved:
    approver_id: uuid.UUID
    approved_at: datetime
    status = LogStatus.APPROVED


LogState = Union[Draft, Submitted, Approved]

# Statuses in which the owner may still change the log
EDITABLE_STATUSES = (LogStatus.DRAFT.value, LogStatus.SUBMITTED.value)


def state_from_columns(
    status: str,
    approved_by: Optional[uuid.UUID] = None,
    approved_at: Optional[datetime] = None,
) -> LogState:
    if status == LogStatus.DRAFT.value:
        return Draft()
    if status == LogStatus.SUBMITTED.value:
        return Submitted()
    if status == LogStatus.APPROVED.value:
        if approved_by is None or approved_at is None:
            raise ValueError("approved log is missing approver attribution")
        return Approved(approver_id=approved_by, approved_at=approved_at)
    raise ValueError(f"unknown log status: {status!r}")


def state_columns(state: LogState) -> dict:
    if isinstance(state, Approved):
        return {
            "status": LogStatus.APPROVED.value,
            "approved_by": state.approver_id,
            "approved_at": state.approved_at,
        }
    return {"status": state.status.value, "approved_by": None, "approved_at": None}


def submit(state: LogState) -> Submitted:
    if not isinstance(state, Draft):
        raise InvalidTransition(f"Log is already {state.status.value}", current_status=state.status.value)
    return Submitted()


def approve(state: LogState, approver_id: uuid.UUID, at: datetime) -> Approved:
    if not isinstance(state, Submitted):
        raise InvalidTransition("Only submitted logs can be approved", current_status=state.status.value)
    return Approved(approver_id=approver_id, approved_at=at)


def is_locked(state: LogState) -> bool:
    return isinstance(state, Approved)
