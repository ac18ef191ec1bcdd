from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from enum import Enum

from upskill.core.clock import utcnow


class EnrollmentState(str, Enum):
    ENROLLED = "enrolled"
    COMPLETED = "completed"
    DROPPED = "dropped"


class Enrollment(BaseModel):
    """
    One per (student, course) pair
    progress is always derived from completed_units over the course's units
    """
    enrollment_id: str  # ENR_XXXXXX
    student_id: str
    course_id: str
    state: EnrollmentState = EnrollmentState.ENROLLED
    enrolled_at: datetime = Field(default_factory=utcnow)
    grade: Optional[float] = None
    progress: int = 0  # 0-100
    completed_units: List[int] = []  # set semantics, stored sorted
    version: int = 0  # bumped on every write, guards read-modify-write
    created_at: datetime = Field(default_factory=utcnow)
