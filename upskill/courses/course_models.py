from datetime import datetime
from typing import Optional, List, Union
from pydantic import BaseModel, Field
from enum import Enum

from upskill.core.clock import utcnow

# ==================== ENUMS ====================

class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    OPEN_ENDED = "open_ended"

# ==================== DATABASE MODELS ====================

class Unit(BaseModel):
    unit_number: int  # unique within the course, starts at 1
    name: str
    detail: Optional[str] = None

class Course(BaseModel):
    course_id: str  # CRS_XXXXXX
    name: str
    description: Optional[str] = None
    is_free: bool = True
    price: float = 0
    professor_id: str  # PRF_XXXXXX
    institution_id: Optional[str] = None
    units: List[Unit] = []
    created_at: datetime = Field(default_factory=utcnow)

class Question(BaseModel):
    question_id: str  # QST_XXXXXX
    course_id: str
    unit_number: Optional[int] = None
    question_text: str
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: List[str] = []
    correct_answer: Union[int, str]  # option index or expected text
    points: int = 10
    created_at: datetime = Field(default_factory=utcnow)
