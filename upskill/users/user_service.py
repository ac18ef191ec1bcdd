import logging
from typing import Optional

from upskill.core.database import UnitOfWork, generate_id, strip_mongo_id
from upskill.core.errors import NotFoundError
from upskill.users.user_models import Professor, UserRole
from upskill.users.user_schemas import ProfessorView

logger = logging.getLogger(__name__)


class UserService:
    """Profile lookups shared by the other services"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.db

    async def get_user(self, user_id: str) -> dict:
        user = await self.db.users.find_one({"user_id": user_id}, **self.uow.opts)
        if not user:
            raise NotFoundError("User not found")
        return strip_mongo_id(user)

    async def get_student_by_user(self, user_id: str) -> Optional[dict]:
        return strip_mongo_id(
            await self.db.students.find_one({"user_id": user_id}, **self.uow.opts)
        )

    async def get_professor_by_user(self, user_id: str) -> Optional[dict]:
        return strip_mongo_id(
            await self.db.professors.find_one({"user_id": user_id}, **self.uow.opts)
        )

    async def require_student(self, user_id: str) -> dict:
        student = await self.get_student_by_user(user_id)
        if not student:
            raise NotFoundError("Student profile not found")
        return student

    async def require_professor(self, user_id: str) -> dict:
        professor = await self.get_professor_by_user(user_id)
        if not professor:
            raise NotFoundError("Professor profile not found")
        return professor

    async def become_professor(self, user_id: str, institution_id: Optional[str] = None) -> ProfessorView:
        """
        Open a professor profile for the caller
        Idempotent: an existing profile is returned as-is
        """
        user = await self.get_user(user_id)

        existing = await self.get_professor_by_user(user_id)
        if existing:
            return ProfessorView(**existing)

        if institution_id:
            institution = await self.db.institutions.find_one(
                {"institution_id": institution_id}, **self.uow.opts
            )
            if not institution:
                raise NotFoundError("Institution not found")

        professor = Professor(
            professor_id=generate_id("PRF"),
            user_id=user_id,
            institution_id=institution_id,
        )

        new_role = user["role"] if user["role"] == UserRole.ADMIN.value else UserRole.PROFESSOR.value

        async with self.uow.transaction():
            await self.db.professors.insert_one(professor.dict(), **self.uow.opts)
            await self.db.users.update_one(
                {"user_id": user_id},
                {"$set": {"professor_id": professor.professor_id, "role": new_role}},
                **self.uow.opts
            )

        logger.info(f"User {user_id} opened professor profile {professor.professor_id}")
        return ProfessorView(**professor.dict())
