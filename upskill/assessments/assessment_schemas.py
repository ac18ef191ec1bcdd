from pydantic import BaseModel, Field, validator
from typing import Optional, List, Union
from datetime import datetime
from enum import Enum
from upskill.assessments.assessment_models import AttemptStatus
from upskill.core.clock import to_naive_utc
from upskill.courses.course_schemas import QuestionStudentView, QuestionProfessorView

# ==================== REQUEST SCHEMAS ====================

def _unique_ids(v):
    if v is None:
        return v
    seen = []
    for question_id in v:
        if question_id not in seen:
            seen.append(question_id)
    return seen


class AssessmentCreate(BaseModel):
    course_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    question_ids: List[str] = Field(..., min_length=1)
    duration_minutes: Optional[int] = Field(None, ge=1)
    passing_score: float = Field(70, ge=0, le=100)
    max_attempts: Optional[int] = Field(None, ge=1)
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_active: bool = True

    @validator('question_ids')
    def dedupe_questions(cls, v):
        return _unique_ids(v)

    @validator('available_from', 'available_until')
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @validator('available_until')
    def validate_window(cls, v, values):
        start = values.get('available_from')
        if v and start and v <= start:
            raise ValueError('available_until must be after available_from')
        return v

class AssessmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    question_ids: Optional[List[str]] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    max_attempts: Optional[int] = Field(None, ge=1)
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_active: Optional[bool] = None

    @validator('question_ids')
    def dedupe_questions(cls, v):
        return _unique_ids(v)

    @validator('available_from', 'available_until')
    def normalize_dates(cls, v):
        return to_naive_utc(v)

class AnswerSubmission(BaseModel):
    question_id: str = Field(..., min_length=1)
    answer: Union[int, float, str]

class SubmitAttemptRequest(BaseModel):
    answers: List[AnswerSubmission] = []

class SaveAnswersRequest(BaseModel):
    answers: List[AnswerSubmission]

class AttemptSortField(str, Enum):
    SUBMITTED_AT = "submitted_at"
    STARTED_AT = "started_at"
    SCORE = "score"
    ATTEMPT_NUMBER = "attempt_number"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

# ==================== RESPONSE SCHEMAS ====================

class AssessmentView(BaseModel):
    assessment_id: str
    course_id: str
    title: str
    description: Optional[str] = None
    question_ids: List[str] = []
    question_count: int = 0
    duration_minutes: Optional[int] = None
    passing_score: float
    max_attempts: Optional[int] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_active: bool
    created_at: Optional[datetime] = None

class AttemptView(BaseModel):
    attempt_id: str
    assessment_id: str
    student_id: str
    attempt_number: int
    status: AttemptStatus
    started_at: datetime
    submitted_at: Optional[datetime] = None
    score: Optional[float] = None
    passed: Optional[bool] = None

class AnswerView(BaseModel):
    question_id: str
    answer: Union[int, float, str]
    is_correct: Optional[bool] = None  # hidden until the attempt is submitted
    answered_at: datetime

class StartedAttempt(BaseModel):
    attempt: AttemptView
    title: str
    duration_minutes: Optional[int] = None
    passing_score: float
    questions: List[QuestionStudentView]
    answers: List[AnswerView] = []
    time_spent: int = 0

class AttemptDetail(BaseModel):
    attempt: AttemptView
    assessment: AssessmentView
    questions: List[Union[QuestionProfessorView, QuestionStudentView]]
    answers: List[AnswerView]
    time_spent: int  # minutes

class StudentAssessmentView(AssessmentView):
    questions: List[QuestionStudentView] = []
    attempts_count: int
    attempts_remaining: Optional[int] = None
    best_score: Optional[float] = None
    last_attempt_date: Optional[datetime] = None
    status: str  # available | expired | completed | no_attempts_left

class PendingAssessment(BaseModel):
    assessment: AssessmentView
    course_id: str
    course_name: str
    attempts_count: int
    attempts_remaining: Optional[int] = None
    best_score: Optional[float] = None
    last_attempt_date: Optional[datetime] = None

class StudentAttemptStats(BaseModel):
    student_id: str
    student_name: Optional[str] = None
    attempts: int
    best_score: float
    passed: bool
    last_attempt_date: Optional[datetime] = None

class QuestionStats(BaseModel):
    question_id: str
    question_text: Optional[str] = None
    correct_answers: int
    total_answers: int
    success_rate: float

class AssessmentStatistics(BaseModel):
    assessment_id: str
    title: str
    total_attempts: int
    unique_students: int
    average_score: float
    highest_score: float
    lowest_score: float
    pass_rate: float
    attempts_by_student: List[StudentAttemptStats]
    question_statistics: List[QuestionStats]

class AttemptStudent(BaseModel):
    student_id: str
    name: Optional[str] = None
    surname: Optional[str] = None

class ProfessorAttemptView(BaseModel):
    attempt_id: str
    student: AttemptStudent
    assessment_id: str
    assessment_title: str
    attempt_number: int
    status: AttemptStatus
    started_at: datetime
    submitted_at: Optional[datetime] = None
    score: Optional[float] = None
    passed: Optional[bool] = None
    time_spent: int = 0

# ==================== MAPPERS ====================

def to_assessment_view(doc: dict) -> AssessmentView:
    question_ids = doc.get("question_ids", [])
    return AssessmentView(
        assessment_id=doc["assessment_id"],
        course_id=doc["course_id"],
        title=doc["title"],
        description=doc.get("description"),
        question_ids=question_ids,
        question_count=len(question_ids),
        duration_minutes=doc.get("duration_minutes"),
        passing_score=doc.get("passing_score", 70),
        max_attempts=doc.get("max_attempts"),
        available_from=doc.get("available_from"),
        available_until=doc.get("available_until"),
        is_active=doc.get("is_active", True),
        created_at=doc.get("created_at"),
    )

def to_attempt_view(doc: dict) -> AttemptView:
    return AttemptView(
        attempt_id=doc["attempt_id"],
        assessment_id=doc["assessment_id"],
        student_id=doc["student_id"],
        attempt_number=doc["attempt_number"],
        status=doc["status"],
        started_at=doc["started_at"],
        submitted_at=doc.get("submitted_at"),
        score=doc.get("score"),
        passed=doc.get("passed"),
    )

def to_answer_view(doc: dict, reveal: bool) -> AnswerView:
    return AnswerView(
        question_id=doc["question_id"],
        answer=doc["answer"],
        is_correct=doc.get("is_correct") if reveal else None,
        answered_at=doc["answered_at"],
    )
