"""
MongoDB wiring
Client lifecycle, per-request unit of work, indexes and id helpers
"""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from upskill.core.config import Config

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(8).upper()}"


def strip_mongo_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


def strip_many(docs: List[dict]) -> List[dict]:
    return [strip_mongo_id(doc) for doc in docs]


def create_client(config: Config) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(config.MONGO_URL, tz_aware=False)


class UnitOfWork:
    """
    Request scoped database handle

    Services receive one of these instead of reaching for a global db.
    Inside ``transaction()`` every collection call should pass ``**uow.opts``
    so it joins the open session when transactions are enabled.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        client: Optional[AsyncIOMotorClient] = None,
        transactional: bool = False,
    ):
        self.db = db
        self.client = client
        self.transactional = bool(transactional and client is not None)
        self.session = None

    @property
    def opts(self) -> Dict[str, Any]:
        return {"session": self.session} if self.session is not None else {}

    @asynccontextmanager
    async def transaction(self):
        # Nested calls reuse the outer session
        if not self.transactional or self.session is not None:
            yield self
            return

        async with await self.client.start_session() as session:
            async with session.start_transaction():
                self.session = session
                try:
                    yield self
                finally:
                    self.session = None


def get_uow(request: Request) -> UnitOfWork:
    """FastAPI dependency: one unit of work per request"""
    state = request.app.state
    return UnitOfWork(
        state.db,
        client=getattr(state, "mongo_client", None),
        transactional=state.config.MONGO_TRANSACTIONS,
    )


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create unique and lookup indexes for every collection"""
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("mail", unique=True)
    await db.users.create_index("reset_password_token")

    await db.students.create_index("student_id", unique=True)
    await db.students.create_index("user_id", unique=True)
    await db.professors.create_index("professor_id", unique=True)
    await db.professors.create_index("user_id", unique=True)

    await db.refresh_tokens.create_index("token", unique=True)
    await db.refresh_tokens.create_index("user_id")

    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index("professor_id")
    await db.questions.create_index("question_id", unique=True)
    await db.questions.create_index([("course_id", ASCENDING), ("unit_number", ASCENDING)])

    await db.enrollments.create_index("enrollment_id", unique=True)
    await db.enrollments.create_index(
        [("student_id", ASCENDING), ("course_id", ASCENDING)], unique=True
    )
    await db.enrollments.create_index("course_id")

    await db.assessments.create_index("assessment_id", unique=True)
    await db.assessments.create_index("course_id")
    await db.assessment_attempts.create_index("attempt_id", unique=True)
    await db.assessment_attempts.create_index(
        [("assessment_id", ASCENDING), ("student_id", ASCENDING), ("attempt_number", ASCENDING)],
        unique=True,
    )
    await db.assessment_attempts.create_index([("student_id", ASCENDING), ("submitted_at", DESCENDING)])
    await db.attempt_answers.create_index(
        [("attempt_id", ASCENDING), ("question_id", ASCENDING)], unique=True
    )

    await db.institutions.create_index("institution_id", unique=True)
    await db.institutions.create_index("normalized_name", unique=True)

    logger.info("MongoDB indexes ensured")
