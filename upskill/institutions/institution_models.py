from datetime import datetime
from typing import List
from pydantic import BaseModel, Field

from upskill.core.clock import utcnow


class Institution(BaseModel):
    institution_id: str  # INS_XXXXXX
    name: str
    normalized_name: str  # unique index
    description: str
    aliases: List[str] = []
    normalized_aliases: List[str] = []
    created_at: datetime = Field(default_factory=utcnow)
