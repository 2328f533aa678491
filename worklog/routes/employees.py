import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.policy import Actor, Capability
from ..auth.security import require_capability
from ..db import get_db
from ..schemas.employees import EmployeeCreate, EmployeeOut, EmployeeStatusResponse, EmployeeUpdate
from ..services import employees as service


router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=List[EmployeeOut])
def list_employees(db: Session = Depends(get_db), _=Depends(require_capability(Capability.EMPLOYEE_READ))):
    return service.list_employees(db)


@router.get("/active", response_model=List[EmployeeOut])
def list_active_employees(db: Session = Depends(get_db), _=Depends(require_capability(Capability.EMPLOYEE_READ))):
    return service.list_active_employees(db)


@router.get("/{employee_id}", response_model=EmployeeOut)
def get_employee(
    employee_id: uuid.UUID,
    db: Session = Depends(get_db),
    _=Depends(require_capability(Capability.EMPLOYEE_READ)),
):
    return service.get_employee(db, employee_id)


@router.post("", response_model=EmployeeOut, status_code=201)
def create_employee(
    payload: EmployeeCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.EMPLOYEE_MANAGE)),
):
    return service.create_employee(db, payload.model_dump(exclude_unset=True), actor)


@router.put("/{employee_id}", response_model=EmployeeOut)
def update_employee(
    employee_id: uuid.UUID,
    payload: EmployeeUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.EMPLOYEE_MANAGE)),
):
    return service.update_employee(db, employee_id, payload.model_dump(exclude_unset=True), actor)


@router.delete("/{employee_id}")
def delete_employee(
    employee_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.EMPLOYEE_MANAGE)),
):
    service.delete_employee(db, employee_id, actor)
    return {"message": "Employee deleted successfully"}


@router.patch("/{employee_id}/toggle-status", response_model=EmployeeStatusResponse)
def toggle_employee_status(
    employee_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.EMPLOYEE_MANAGE)),
):
    employee = service.toggle_employee_active(db, employee_id, actor)
    state = "activated" if employee.is_active else "deactivated"
    return EmployeeStatusResponse(
        id=employee.id,
        is_active=employee.is_active,
        message=f"Employee {state} successfully",
    )
