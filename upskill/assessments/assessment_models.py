from datetime import datetime
from typing import Optional, List, Union
from pydantic import BaseModel, Field
from enum import Enum

from upskill.core.clock import utcnow

# ==================== ENUMS ====================

class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"  # terminal, nothing moves an attempt here yet

# ==================== DATABASE MODELS ====================

class Assessment(BaseModel):
    assessment_id: str  # ASM_XXXXXX
    course_id: str
    title: str
    description: Optional[str] = None
    question_ids: List[str] = []  # order irrelevant
    duration_minutes: Optional[int] = None
    passing_score: float = 70
    max_attempts: Optional[int] = None  # None = unlimited
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

class AssessmentAttempt(BaseModel):
    attempt_id: str  # ATT_XXXXXX
    assessment_id: str
    student_id: str
    attempt_number: int  # 1, 2, ... per (assessment, student)
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    started_at: datetime = Field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None
    score: Optional[float] = None
    passed: Optional[bool] = None
    last_activity_at: Optional[datetime] = None

class AttemptAnswer(BaseModel):
    answer_id: str  # ANS_XXXXXX
    attempt_id: str
    question_id: str
    answer: Union[int, float, str]
    is_correct: bool
    answered_at: datetime = Field(default_factory=utcnow)
