import uuid
from datetime import date
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..auth.policy import Actor
from ..errors import NotFound, ValidationError
from ..models.models import Employee
from .audit import compute_diff, record_audit


EMPLOYEE_FIELDS = ("full_name", "position", "phone", "email", "employee_code", "hire_date", "is_active", "notes")
REQUIRED_FIELDS = {"full_name": "Full name is required", "position": "Position is required"}
NON_NULL_FIELDS = ("hire_date", "is_active")


def _snapshot(employee: Employee) -> Dict[str, Any]:
    return {f: getattr(employee, f) for f in EMPLOYEE_FIELDS}


def _validate(data: Dict[str, Any], partial: bool) -> None:
    errors = {}
    for field, message in REQUIRED_FIELDS.items():
        if field not in data:
            if not partial:
                errors[field] = message
            continue
        value = (data[field] or "").strip()
        if not value:
            errors[field] = message if not partial else message.replace("is required", "cannot be empty")
        data[field] = value
    if errors:
        raise ValidationError(errors)


def list_employees(db: Session) -> List[Employee]:
    return db.query(Employee).order_by(Employee.full_name.asc()).all()


def list_active_employees(db: Session) -> List[Employee]:
    return db.query(Employee).filter(Employee.is_active.is_(True)).order_by(Employee.full_name.asc()).all()


def get_employee(db: Session, employee_id: uuid.UUID) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound("Employee not found")
    return employee


def create_employee(db: Session, data: Dict[str, Any], actor: Actor) -> Employee:
    _validate(data, partial=False)
    values = {k: v for k, v in data.items() if k in EMPLOYEE_FIELDS and v is not None}
    values.setdefault("hire_date", date.today())
    values.setdefault("is_active", True)
    employee = Employee(**values)
    db.add(employee)
    db.flush()
    record_audit(db, "employee", employee.id, "CREATE", actor, changes=_snapshot(employee))
    db.commit()
    db.refresh(employee)
    return employee


def update_employee(db: Session, employee_id: uuid.UUID, data: Dict[str, Any], actor: Actor) -> Employee:
    """Apply only the provided fields; omitted fields keep their stored value."""
    employee = get_employee(db, employee_id)
    changes = {
        k: v for k, v in data.items()
        if k in EMPLOYEE_FIELDS and not (v is None and k in NON_NULL_FIELDS)
    }
    _validate(changes, partial=True)
    before = _snapshot(employee)
    for field, value in changes.items():
        setattr(employee, field, value)
    diff = compute_diff(before, _snapshot(employee))
    if diff:
        record_audit(db, "employee", employee.id, "UPDATE", actor, changes=diff)
    db.commit()
    db.refresh(employee)
    return employee


def delete_employee(db: Session, employee_id: uuid.UUID, actor: Actor) -> None:
    employee = get_employee(db, employee_id)
    record_audit(db, "employee", employee.id, "DELETE", actor, changes=_snapshot(employee))
    db.delete(employee)
    db.commit()


def toggle_employee_active(db: Session, employee_id: uuid.UUID, actor: Actor) -> Employee:
    employee = get_employee(db, employee_id)
    employee.is_active = not employee.is_active
    record_audit(db, "employee", employee.id, "TOGGLE", actor, changes={"is_active": employee.is_active})
    db.commit()
    db.refresh(employee)
    return employee
