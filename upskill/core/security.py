"""
Credential primitives and auth dependencies
bcrypt password hashing, SHA-256 token hashing, HS256 access tokens
"""

import hashlib
import secrets
from datetime import timedelta
from typing import Callable, Optional

import bcrypt
import jwt
from fastapi import Depends, Header

from upskill.core.clock import utcnow
from upskill.core.config import Config, get_config
from upskill.core.errors import ForbiddenError, UnauthorizedError


# ==================== HASHING ====================

def hash_password(password: str, rounds: int = 10) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def hash_token(token: str) -> str:
    """SHA256 of an opaque token; only the digest is stored"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token(num_bytes: int = 32) -> str:
    return secrets.token_hex(num_bytes)


# ==================== ACCESS TOKENS ====================

def create_access_token(user_id: str, role: str, config: Optional[Config] = None) -> str:
    config = config or get_config()
    payload = {
        "id": user_id,
        "role": role,
        "exp": utcnow() + timedelta(hours=config.ACCESS_TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str, config: Optional[Config] = None) -> dict:
    config = config or get_config()
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")


class CurrentUser:
    """Caller identity taken from a verified access token"""

    def __init__(self, user_id: str, role: str):
        self.user_id = user_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"CurrentUser({self.user_id!r}, {self.role!r})"


async def get_current_user(authorization: str = Header(None)) -> CurrentUser:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Unauthorized")

    token = authorization.split(" ", 1)[1].strip()
    payload = decode_access_token(token)

    user_id = payload.get("id")
    role = payload.get("role")
    if not user_id or not role:
        raise UnauthorizedError("Invalid token: missing claims")
    return CurrentUser(user_id, role)


def require_roles(*roles: str) -> Callable:
    """Dependency factory: caller must hold one of ``roles``"""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise ForbiddenError("Access denied. Insufficient role.")
        return user

    return checker
