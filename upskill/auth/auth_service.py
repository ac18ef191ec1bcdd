"""
Identity & credential management
Registration, login, refresh-token rotation, password reset
"""

import logging
from datetime import timedelta
from typing import Optional

from pymongo.errors import DuplicateKeyError

from upskill.auth.auth_models import RefreshToken
from upskill.auth.auth_schemas import LoginResult, RegisterRequest, TokenPair
from upskill.core.clock import utcnow
from upskill.core.config import Config, get_config
from upskill.core.database import UnitOfWork, generate_id, strip_mongo_id
from upskill.core.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    SecurityBreachError,
    UnauthorizedError,
)
from upskill.core.security import (
    create_access_token,
    generate_token,
    hash_password,
    hash_token,
    verify_password,
)
from upskill.notifications.email_service import EmailDeliveryError
from upskill.users.user_models import Student, User, UserRole
from upskill.users.user_schemas import UserView, to_user_view

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If the mail is registered, a password reset link has been sent"
RESET_PASSWORD_MESSAGE = "Password has been reset successfully"


class AuthService:
    """Handle all credential related operations"""

    def __init__(self, uow: UnitOfWork, notifier=None, config: Optional[Config] = None):
        self.uow = uow
        self.db = uow.db
        self.notifier = notifier
        self.config = config or get_config()

    # ==================== REGISTRATION / LOGIN ====================

    async def register(self, data: RegisterRequest) -> UserView:
        """
        Create a user with a paired student profile

        Raises:
            ConflictError: mail already registered
        """
        if await self.db.users.find_one({"mail": data.mail}, **self.uow.opts):
            raise ConflictError("Mail is already registered")

        user_id = generate_id("USR")
        student = Student(student_id=generate_id("STU"), user_id=user_id)
        user = User(
            user_id=user_id,
            name=data.name,
            surname=data.surname,
            mail=data.mail,
            password=hash_password(data.password, rounds=self.config.BCRYPT_ROUNDS),
            role=UserRole.STUDENT,
            profile_picture=data.profile_picture,
            student_id=student.student_id,
        )

        try:
            async with self.uow.transaction():
                await self.db.users.insert_one(user.dict(), **self.uow.opts)
                await self.db.students.insert_one(student.dict(), **self.uow.opts)
        except DuplicateKeyError:
            # Lost a race against a concurrent registration
            raise ConflictError("Mail is already registered")

        logger.info(f"Registered user {user_id}")
        return to_user_view(user.dict())

    async def login(self, mail: str, password: str, remember_me: bool = False) -> LoginResult:
        user = await self.db.users.find_one({"mail": mail.strip().lower()}, **self.uow.opts)

        # Same error for unknown mail and wrong password
        if not user or not verify_password(password, user.get("password")):
            logger.warning("Failed login attempt")
            raise InvalidCredentialsError("Invalid credentials")

        role = _role_value(user["role"])
        access_token = create_access_token(user["user_id"], role, self.config)

        refresh_token = None
        if remember_me:
            refresh_token = await self._issue_refresh_token(user["user_id"])

        return LoginResult(
            user=to_user_view(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    # ==================== REFRESH TOKENS ====================

    async def _issue_refresh_token(self, user_id: str) -> str:
        record = RefreshToken(
            token=generate_token(40),
            user_id=user_id,
            expires_at=utcnow() + timedelta(days=self.config.REFRESH_TOKEN_EXPIRE_DAYS),
        )
        await self.db.refresh_tokens.insert_one(record.dict(), **self.uow.opts)
        return record.token

    async def _revoke_all(self, user_id: str) -> int:
        result = await self.db.refresh_tokens.update_many(
            {"user_id": user_id, "revoked": False},
            {"$set": {"revoked": True}},
        )
        return result.modified_count

    async def refresh_token(self, token: Optional[str]) -> TokenPair:
        """
        Rotate a refresh token

        A revoked token being presented again means it leaked: every
        token of that user is revoked and SecurityBreachError is raised.
        """
        if not token:
            raise UnauthorizedError("Refresh token required")

        record = await self.db.refresh_tokens.find_one({"token": token}, **self.uow.opts)
        if not record:
            raise UnauthorizedError("Invalid refresh token")

        user_id = record["user_id"]

        if record.get("revoked"):
            revoked = await self._revoke_all(user_id)
            logger.warning(f"Refresh token reuse for user {user_id}, revoked {revoked} tokens")
            raise SecurityBreachError()

        if record["expires_at"] <= utcnow():
            raise UnauthorizedError("Refresh token expired")

        user = await self.db.users.find_one({"user_id": user_id}, **self.uow.opts)
        if not user:
            raise UnauthorizedError("User no longer exists")

        new_record = RefreshToken(
            token=generate_token(40),
            user_id=user_id,
            expires_at=utcnow() + timedelta(days=self.config.REFRESH_TOKEN_EXPIRE_DAYS),
        )

        rotated = False
        async with self.uow.transaction():
            # Conditional write: only one caller may rotate a given token
            result = await self.db.refresh_tokens.update_one(
                {"token": token, "revoked": False},
                {"$set": {"revoked": True, "replaced_by_token": new_record.token}},
                **self.uow.opts
            )
            if result.modified_count == 1:
                await self.db.refresh_tokens.insert_one(new_record.dict(), **self.uow.opts)
                rotated = True

        if not rotated:
            revoked = await self._revoke_all(user_id)
            logger.warning(f"Concurrent refresh for user {user_id}, revoked {revoked} tokens")
            raise SecurityBreachError()

        access_token = create_access_token(user_id, _role_value(user["role"]), self.config)
        return TokenPair(access_token=access_token, refresh_token=new_record.token)

    async def logout(self, token: Optional[str]) -> None:
        """Revoke the token if it exists; unknown tokens are ignored"""
        if not token:
            return
        await self.db.refresh_tokens.update_one(
            {"token": token},
            {"$set": {"revoked": True}},
            **self.uow.opts
        )

    # ==================== PASSWORD RESET ====================

    async def forgot_password(self, mail: str) -> str:
        """Always answers with the same message, registered or not"""
        user = await self.db.users.find_one({"mail": mail.strip().lower()}, **self.uow.opts)
        if not user:
            return FORGOT_PASSWORD_MESSAGE

        token = generate_token(32)
        expires_at = utcnow() + timedelta(minutes=self.config.RESET_TOKEN_EXPIRE_MINUTES)

        await self.db.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {
                "reset_password_token": hash_token(token),
                "reset_password_expires": expires_at,
            }},
            **self.uow.opts
        )

        reset_url = f"{self.config.FRONTEND_URL}/reset-password?token={token}"
        try:
            await self.notifier.send_password_reset(user, reset_url)
        except EmailDeliveryError:
            logger.exception(f"Password reset mail failed for user {user['user_id']}")
            await self.db.users.update_one(
                {"user_id": user["user_id"]},
                {"$set": {"reset_password_token": None, "reset_password_expires": None}},
                **self.uow.opts
            )

        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, token: str, new_password: str) -> str:
        user = await self.db.users.find_one(
            {
                "reset_password_token": hash_token(token),
                "reset_password_expires": {"$gt": utcnow()},
            },
            **self.uow.opts
        )
        if not user:
            raise InvalidOrExpiredTokenError("Invalid or expired token")

        await self.db.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {
                "password": hash_password(new_password, rounds=self.config.BCRYPT_ROUNDS),
                "reset_password_token": None,
                "reset_password_expires": None,
            }},
            **self.uow.opts
        )

        logger.info(f"Password reset for user {user['user_id']}")
        return RESET_PASSWORD_MESSAGE

    async def get_profile(self, user_id: str) -> UserView:
        user = strip_mongo_id(await self.db.users.find_one({"user_id": user_id}, **self.uow.opts))
        if not user:
            raise NotFoundError("User not found")
        return to_user_view(user)


def _role_value(role) -> str:
    return role.value if isinstance(role, UserRole) else str(role)
