from pydantic import BaseModel, Field, validator
from typing import Optional, List, Union
from datetime import datetime
from upskill.courses.course_models import QuestionType

# ==================== REQUEST SCHEMAS ====================

class UnitSchema(BaseModel):
    unit_number: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=200)
    detail: Optional[str] = None


def _unique_unit_numbers(units):
    if units is None:
        return units
    numbers = [u.unit_number for u in units]
    if len(numbers) != len(set(numbers)):
        raise ValueError('unit numbers must be unique within a course')
    return sorted(units, key=lambda u: u.unit_number)


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    is_free: bool = True
    price: float = Field(0, ge=0)
    units: List[UnitSchema] = []

    @validator('units')
    def validate_units(cls, v):
        return _unique_unit_numbers(v)

class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    is_free: Optional[bool] = None
    price: Optional[float] = Field(None, ge=0)
    units: Optional[List[UnitSchema]] = None

    @validator('units')
    def validate_units(cls, v):
        return _unique_unit_numbers(v)

class QuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    unit_number: Optional[int] = Field(None, ge=1)
    options: List[str] = []
    correct_answer: Union[int, str]
    points: int = Field(10, ge=0)

    @validator('correct_answer')
    def validate_correct_answer(cls, v, values):
        options = values.get('options') or []
        if values.get('question_type') == QuestionType.MULTIPLE_CHOICE:
            if len(options) < 2:
                raise ValueError('multiple choice questions need at least two options')
            if isinstance(v, int) and not 0 <= v < len(options):
                raise ValueError('correct_answer index is out of range')
        return v

# ==================== RESPONSE SCHEMAS ====================

class UnitView(BaseModel):
    unit_number: int
    name: str
    detail: Optional[str] = None

class CourseView(BaseModel):
    course_id: str
    name: str
    description: Optional[str] = None
    is_free: bool
    price: float
    professor_id: str
    professor_name: Optional[str] = None
    institution_id: Optional[str] = None
    units: List[UnitView] = []
    created_at: Optional[datetime] = None

class QuestionStudentView(BaseModel):
    """What a student sees before submission; no correct answer"""
    question_id: str
    course_id: str
    unit_number: Optional[int] = None
    question_text: str
    question_type: QuestionType
    options: List[str] = []
    points: int

class QuestionProfessorView(QuestionStudentView):
    correct_answer: Union[int, str]
    created_at: Optional[datetime] = None

# ==================== MAPPERS ====================

def to_student_view(doc: dict) -> QuestionStudentView:
    return QuestionStudentView(
        question_id=doc["question_id"],
        course_id=doc["course_id"],
        unit_number=doc.get("unit_number"),
        question_text=doc["question_text"],
        question_type=doc["question_type"],
        options=doc.get("options", []),
        points=doc.get("points", 10),
    )

def to_professor_view(doc: dict) -> QuestionProfessorView:
    return QuestionProfessorView(
        **to_student_view(doc).dict(),
        correct_answer=doc["correct_answer"],
        created_at=doc.get("created_at"),
    )

def to_course_view(doc: dict, professor_name: Optional[str] = None) -> CourseView:
    return CourseView(
        course_id=doc["course_id"],
        name=doc["name"],
        description=doc.get("description"),
        is_free=doc.get("is_free", True),
        price=doc.get("price", 0),
        professor_id=doc["professor_id"],
        professor_name=professor_name,
        institution_id=doc.get("institution_id"),
        units=[UnitView(**unit) for unit in doc.get("units", [])],
        created_at=doc.get("created_at"),
    )
