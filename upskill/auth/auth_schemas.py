from pydantic import BaseModel, Field, validator
from typing import Optional
from upskill.users.user_schemas import UserView

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v

# ==================== REQUEST SCHEMAS ====================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    surname: str = Field(..., min_length=1, max_length=100)
    mail: str = Field(..., max_length=254)
    password: str = Field(..., min_length=6, max_length=128)
    profile_picture: Optional[str] = None

    @validator('password')
    def password_fits_bcrypt(cls, v):
        return check_password_bytes(v)

    @validator('mail')
    def validate_mail(cls, v):
        v = v.strip().lower()
        local, _, domain = v.partition('@')
        if not local or '.' not in domain:
            raise ValueError('mail must be a valid email address')
        return v

    @validator('name', 'surname')
    def strip_names(cls, v):
        if not v.strip():
            raise ValueError('must not be blank')
        return v.strip()

class LoginRequest(BaseModel):
    mail: str
    password: str
    remember_me: bool = False

    @validator('mail')
    def normalize_mail(cls, v):
        return v.strip().lower()

class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None

class ForgotPasswordRequest(BaseModel):
    mail: str

    @validator('mail')
    def normalize_mail(cls, v):
        return v.strip().lower()

class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

    @validator('new_password')
    def password_fits_bcrypt(cls, v):
        return check_password_bytes(v)

# ==================== RESPONSE SCHEMAS ====================

class LoginResult(BaseModel):
    user: UserView
    access_token: str
    refresh_token: Optional[str] = None

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
