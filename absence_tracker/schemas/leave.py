"""
Pydantic schemas for leaves and bulk absence generation.
"""

from pydantic import BaseModel
from typing import Optional, Literal
import datetime as dt

from absence_tracker.schemas.absence import SubstituteType

LeaveStatus = Literal["active", "inactive", "completed"]


class Leave(BaseModel):
    id: str
    teacher_id: str
    teacher_name: str = ""
    start_date: dt.date
    end_date: dt.date
    reason: str
    document_url: Optional[str] = None
    status: str = "active"
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class LeaveCreate(BaseModel):
    teacher_id: str
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    reason: str = ""
    document_url: Optional[str] = None
    status: LeaveStatus = "active"


class LeaveUpdate(BaseModel):
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    reason: Optional[str] = None
    document_url: Optional[str] = None
    status: Optional[LeaveStatus] = None


class BulkGenerateRequest(BaseModel):
    include_weekends: bool = False
    total_classes: Optional[float] = None  # across the whole leave
    has_substitute: bool = False
    substitute_type: Optional[SubstituteType] = None
    substitute_teacher_id: Optional[str] = None  # roster id, Tutor Substituto
    substitute_teacher_name2: Optional[str] = None  # Professor
    substitute_teacher_name3: Optional[str] = None  # Outro
    substitute_total_classes: Optional[float] = None  # across the whole leave
