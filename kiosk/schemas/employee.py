"""Pydantic schemas for Employee / Department CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

_UNIQUE_ID_RE = re.compile(r"^[A-Za-z0-9:_-]{1,64}$")


def _required_text(v: str, field: str, max_len: int) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} must not be empty")
    if len(v) > max_len:
        raise ValueError(f"{field} must not exceed {max_len} characters")
    return v


# ── Department ──────────────────────────────────────────────────────
class DepartmentCreate(BaseModel):
    name: str
    department_head: str

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _required_text(v, "Name", 100)

    @field_validator("department_head")
    @classmethod
    def _head(cls, v: str) -> str:
        return _required_text(v, "Department head", 200)


class DepartmentUpdate(BaseModel):
    name: str | None = None
    department_head: str | None = None


class DepartmentRead(BaseModel):
    id: int
    name: str
    department_head: str
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(BaseModel):
    unique_id: str
    firstname: str
    lastname: str
    middlename: str | None = None
    display_name: str | None = None
    department_id: int | None = None
    age: int | None = None
    gender: str | None = None
    biometric_data: str | None = None

    @field_validator("unique_id")
    @classmethod
    def _unique_id(cls, v: str) -> str:
        v = v.strip()
        if not _UNIQUE_ID_RE.match(v):
            raise ValueError("Unique ID must be 1-64 alphanumeric chars (colons / hyphens allowed)")
        return v

    @field_validator("firstname", "lastname")
    @classmethod
    def _names(cls, v: str) -> str:
        return _required_text(v, "Name", 100)

    @field_validator("age")
    @classmethod
    def _age(cls, v: int | None) -> int | None:
        if v is not None and not 0 < v < 150:
            raise ValueError("Age must be between 1 and 149")
        return v

    def resolved_display_name(self) -> str:
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        return f"{self.firstname} {self.lastname}"


class EmployeeUpdate(BaseModel):
    firstname: str | None = None
    lastname: str | None = None
    middlename: str | None = None
    display_name: str | None = None
    department_id: int | None = None
    age: int | None = None
    gender: str | None = None
    biometric_data: str | None = None


class EmployeeRead(BaseModel):
    id: int
    unique_id: str
    firstname: str
    lastname: str
    middlename: str | None
    display_name: str
    department_id: int | None
    age: int | None
    gender: str | None
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class FingerprintTemplate(BaseModel):
    employee_id: int
    template: str
