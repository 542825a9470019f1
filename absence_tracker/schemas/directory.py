"""
Pydantic schemas for reference data: teachers, departments, substitutes.
"""

from pydantic import BaseModel
from typing import Optional


# ---- Teacher ----
class Teacher(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    department_id: Optional[str] = None
    unit: Optional[str] = None
    contract_type: Optional[str] = None
    course: Optional[str] = None
    teaching_period: Optional[str] = None
    regency: Optional[bool] = None  # pedagogical technician rather than classroom teacher


class TeacherCreate(BaseModel):
    name: str
    email: str
    department_id: Optional[str] = None
    unit: Optional[str] = None
    contract_type: Optional[str] = None
    course: Optional[str] = None
    teaching_period: Optional[str] = None
    regency: Optional[bool] = None


# ---- Department ----
class Department(BaseModel):
    id: str
    name: str
    discipline_code: Optional[str] = None


# ---- Substitute roster ----
class Substitute(BaseModel):
    id: str
    name: str
    unit: str = ""
    active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SubstituteCreate(BaseModel):
    name: str = ""
    unit: str = ""
