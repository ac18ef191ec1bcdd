from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime

MAX_ALIASES = 10

# ==================== REQUEST SCHEMAS ====================

def _clean_aliases(v):
    if v is None:
        return v
    cleaned = []
    for alias in v:
        alias = alias.strip()
        if alias and alias not in cleaned:
            cleaned.append(alias)
    if len(cleaned) > MAX_ALIASES:
        raise ValueError(f'at most {MAX_ALIASES} aliases are allowed')
    for alias in cleaned:
        if len(alias) > 200:
            raise ValueError('aliases must be at most 200 characters')
    return cleaned


class InstitutionCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    aliases: List[str] = []

    @validator('name')
    def strip_name(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError('name must be at least 3 characters')
        return v

    @validator('aliases')
    def validate_aliases(cls, v):
        return _clean_aliases(v)

class InstitutionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    aliases: Optional[List[str]] = None

    @validator('name')
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError('name must be at least 3 characters')
        return v

    @validator('aliases')
    def validate_aliases(cls, v):
        return _clean_aliases(v)

# ==================== RESPONSE SCHEMAS ====================

class InstitutionView(BaseModel):
    institution_id: str
    name: str
    description: str
    aliases: List[str] = []
    professor_count: int = 0
    created_at: Optional[datetime] = None
