from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from upskill.users.user_models import UserRole, ProfessorState

# ==================== REQUEST SCHEMAS ====================

class BecomeProfessorRequest(BaseModel):
    institution_id: Optional[str] = None

# ==================== RESPONSE SCHEMAS ====================

class UserView(BaseModel):
    user_id: str
    name: str
    surname: str
    mail: str
    role: UserRole
    profile_picture: Optional[str] = None
    student_id: Optional[str] = None
    professor_id: Optional[str] = None
    created_at: Optional[datetime] = None

class ProfessorView(BaseModel):
    professor_id: str
    user_id: str
    state: ProfessorState
    institution_id: Optional[str] = None
    created_at: Optional[datetime] = None


def to_user_view(doc: dict) -> UserView:
    """Credential fields never leave the service layer"""
    return UserView(
        user_id=doc["user_id"],
        name=doc["name"],
        surname=doc["surname"],
        mail=doc["mail"],
        role=doc["role"],
        profile_picture=doc.get("profile_picture"),
        student_id=doc.get("student_id"),
        professor_id=doc.get("professor_id"),
        created_at=doc.get("created_at"),
    )
