from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from enum import Enum

from upskill.core.clock import utcnow

# ==================== ENUMS ====================

class UserRole(str, Enum):
    ADMIN = "admin"
    PROFESSOR = "professor"
    STUDENT = "student"

class ProfessorState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"

# ==================== DATABASE MODELS ====================

class User(BaseModel):
    user_id: str  # USR_XXXXXX
    name: str
    surname: str
    mail: str
    password: str  # bcrypt hash
    role: UserRole = UserRole.STUDENT
    profile_picture: Optional[str] = None
    reset_password_token: Optional[str] = None  # sha256 of the mailed token
    reset_password_expires: Optional[datetime] = None
    student_id: Optional[str] = None
    professor_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

class Student(BaseModel):
    student_id: str  # STU_XXXXXX
    user_id: str
    courses: List[str] = []  # active course ids
    created_at: datetime = Field(default_factory=utcnow)

class Professor(BaseModel):
    professor_id: str  # PRF_XXXXXX
    user_id: str
    state: ProfessorState = ProfessorState.ACTIVE
    institution_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
