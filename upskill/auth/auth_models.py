from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from upskill.core.clock import utcnow


class RefreshToken(BaseModel):
    """
    Opaque refresh token record
    Never deleted; revoked rows stay around for reuse detection
    """
    token: str
    user_id: str
    expires_at: datetime
    revoked: bool = False
    replaced_by_token: Optional[str] = None  # next link in the rotation chain
    created_at: datetime = Field(default_factory=utcnow)
