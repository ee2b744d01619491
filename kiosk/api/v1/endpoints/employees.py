"""
Employee & Department CRUD endpoints.

Employees are never hard-deleted: DELETE deactivates the employee so the
attendance history stays intact. Deactivated employees cannot scan.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.v1.deps import get_db
from kiosk.models.employee import Department, Employee
from kiosk.schemas.attendance import DeleteResponse
from kiosk.schemas.employee import (
    DepartmentCreate,
    DepartmentRead,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeRead,
    EmployeeUpdate,
    FingerprintTemplate,
)

router = APIRouter(tags=["employees"])
logger = logging.getLogger(__name__)


def _like(search: str) -> str:
    # Escape SQL LIKE metacharacters to prevent wildcard injection
    safe_search = search.replace("%", r"\%").replace("_", r"\_")
    return f"%{safe_search}%"


async def _get_department(db: AsyncSession, department_id: int) -> Department:
    department = await db.get(Department, department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


# ── Employee CRUD ───────────────────────────────────────────────────
@router.get("/employees", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    search: str | None = None,
    department_id: int | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[Employee]:
    query = (
        select(Employee)
        .where(Employee.is_active.is_(True))
        .order_by(Employee.lastname, Employee.firstname)
        .offset(skip)
        .limit(limit)
    )
    if search:
        pattern = _like(search)
        query = query.where(
            or_(
                Employee.firstname.ilike(pattern, escape="\\"),
                Employee.lastname.ilike(pattern, escape="\\"),
                Employee.display_name.ilike(pattern, escape="\\"),
                Employee.unique_id.ilike(pattern, escape="\\"),
            )
        )
    if department_id is not None:
        query = query.where(Employee.department_id == department_id)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/employees", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    existing = await db.execute(select(Employee).where(Employee.unique_id == body.unique_id))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=400,
            detail=f"Unique ID '{body.unique_id}' already registered",
        )
    if body.department_id is not None:
        await _get_department(db, body.department_id)

    employee = Employee(
        **body.model_dump(exclude={"display_name"}),
        display_name=body.resolved_display_name(),
    )
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("Created employee %s (%s)", employee.display_name, employee.unique_id)
    return employee


@router.get("/employees/templates", response_model=list[FingerprintTemplate])
async def list_templates(
    db: AsyncSession = Depends(get_db),
) -> list[FingerprintTemplate]:
    """Enrolled fingerprint templates the reader service matches scans against."""
    result = await db.execute(
        select(Employee.id, Employee.biometric_data)
        .where(Employee.is_active.is_(True), Employee.biometric_data.is_not(None))
        .order_by(Employee.id)
    )
    return [
        FingerprintTemplate(employee_id=emp_id, template=template)
        for emp_id, template in result.all()
    ]


@router.get("/employees/unique/{unique_id}", response_model=EmployeeRead)
async def get_employee_by_unique_id(
    unique_id: str,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    result = await db.execute(select(Employee).where(Employee.unique_id == unique_id))
    emp = result.scalar_one_or_none()
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


@router.get("/employees/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True))
    )
    emp = result.scalar_one_or_none()
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


@router.put("/employees/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    emp = await db.get(Employee, employee_id)
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    changes = body.model_dump(exclude_unset=True)
    if changes.get("department_id") is not None:
        await _get_department(db, changes["department_id"])
    for field in ("firstname", "lastname", "display_name"):
        if field in changes and not (changes[field] or "").strip():
            raise HTTPException(status_code=422, detail=f"{field} must not be empty")

    for field, value in changes.items():
        setattr(emp, field, value)

    await db.commit()
    await db.refresh(emp)
    logger.info("Updated employee %d", employee_id)
    return emp


@router.delete("/employees/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    """Soft-delete (deactivate) an employee. Attendance history is preserved."""
    emp = await db.get(Employee, employee_id)
    if emp is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    emp.is_active = False
    await db.commit()
    logger.info("Soft-deleted employee %d (%s)", employee_id, emp.display_name)
    return DeleteResponse(success=True, message=f"Employee '{emp.display_name}' deactivated")


# ── Department CRUD ─────────────────────────────────────────────────
@router.get("/departments", response_model=list[DepartmentRead])
async def list_departments(
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[Department]:
    query = select(Department).order_by(Department.name)
    if search:
        query = query.where(Department.name.ilike(_like(search), escape="\\"))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/departments", response_model=DepartmentRead, status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
) -> Department:
    department = Department(**body.model_dump())
    db.add(department)
    await db.commit()
    await db.refresh(department)
    logger.info("Created department %s", department.name)
    return department


@router.get("/departments/{department_id}", response_model=DepartmentRead)
async def get_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
) -> Department:
    return await _get_department(db, department_id)


@router.put("/departments/{department_id}", response_model=DepartmentRead)
async def update_department(
    department_id: int,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
) -> Department:
    department = await _get_department(db, department_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None or not str(value).strip():
            raise HTTPException(status_code=422, detail=f"{field} must not be empty")
        setattr(department, field, value.strip())

    await db.commit()
    await db.refresh(department)
    logger.info("Updated department %d", department_id)
    return department


@router.delete("/departments/{department_id}", response_model=DeleteResponse)
async def delete_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    department = await _get_department(db, department_id)
    members = await db.execute(
        select(func.count(Employee.id)).where(Employee.department_id == department_id)
    )
    if (members.scalar() or 0) > 0:
        raise HTTPException(
            status_code=400,
            detail="Department still has employees assigned",
        )

    await db.delete(department)
    await db.commit()
    logger.info("Deleted department %d (%s)", department_id, department.name)
    return DeleteResponse(success=True, message=f"Department '{department.name}' deleted")
