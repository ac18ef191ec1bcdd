from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from upskill.courses.course_schemas import UnitView
from upskill.enrollments.enrollment_models import EnrollmentState

# ==================== REQUEST SCHEMAS ====================

class EnrollmentCreate(BaseModel):
    course_id: str = Field(..., min_length=1)

class EnrollmentUpdate(BaseModel):
    state: Optional[EnrollmentState] = None
    grade: Optional[float] = Field(None, ge=0, le=100)
    progress: Optional[int] = Field(None, ge=0, le=100)

class UnitProgressRequest(BaseModel):
    unit_number: int = Field(..., ge=1)

# ==================== RESPONSE SCHEMAS ====================

class EnrollmentCourseSummary(BaseModel):
    course_id: str
    name: str
    description: Optional[str] = None
    is_free: bool = True
    professor_name: Optional[str] = None
    units: List[UnitView] = []

class EnrollmentView(BaseModel):
    """Student referenced by id only; no personal data"""
    enrollment_id: str
    student_id: str
    course: Optional[EnrollmentCourseSummary] = None
    state: EnrollmentState
    enrolled_at: datetime
    grade: Optional[float] = None
    progress: int
    completed_units: List[int] = []


def to_enrollment_view(doc: dict, course: Optional[dict] = None, professor_name: Optional[str] = None) -> EnrollmentView:
    summary = None
    if course:
        summary = EnrollmentCourseSummary(
            course_id=course["course_id"],
            name=course["name"],
            description=course.get("description"),
            is_free=course.get("is_free", True),
            professor_name=professor_name,
            units=[UnitView(**u) for u in course.get("units", [])],
        )
    return EnrollmentView(
        enrollment_id=doc["enrollment_id"],
        student_id=doc["student_id"],
        course=summary,
        state=doc["state"],
        enrolled_at=doc["enrolled_at"],
        grade=doc.get("grade"),
        progress=doc.get("progress", 0),
        completed_units=sorted(doc.get("completed_units", [])),
    )
