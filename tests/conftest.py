"""
Pytest configuration and fixtures
In-memory Motor database (mongomock-motor) and factories built on the services
"""

import os
import uuid
from unittest.mock import AsyncMock

# Test environment before anything reads the config
os.environ.update({
    "APP_ENV": "local",
    "JWT_SECRET": "test-secret",
    "FRONTEND_URL": "http://frontend.test",
    "MONGO_TRANSACTIONS": "false",
    "LOG_LEVEL": "WARNING",
})

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from upskill.auth.auth_schemas import RegisterRequest
from upskill.auth.auth_service import AuthService
from upskill.core.config import get_config, reset_config
from upskill.core.database import UnitOfWork, create_indexes
from upskill.core.security import CurrentUser
from upskill.courses.course_schemas import CourseCreate, QuestionCreate, UnitSchema
from upskill.courses.course_service import CourseService, QuestionService
from upskill.users.user_service import UserService


# ============================================
# Core Fixtures
# ============================================

@pytest.fixture
def config():
    reset_config()
    cfg = get_config()
    cfg.BCRYPT_ROUNDS = 4  # keep hashing fast
    yield cfg
    reset_config()


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client[f"upskill_test_{uuid.uuid4().hex[:8]}"]
    await create_indexes(database)
    yield database


@pytest.fixture
def uow(db):
    return UnitOfWork(db)


@pytest.fixture
def notifier():
    """Stands in for NotificationService"""
    return AsyncMock()


# ============================================
# Factories
# ============================================

@pytest.fixture
def make_student(uow, config):
    async def _make(name="Ana", surname="Lopez", mail=None, password="secret123") -> CurrentUser:
        service = AuthService(uow, AsyncMock(), config)
        user = await service.register(RegisterRequest(
            name=name,
            surname=surname,
            mail=mail or f"{uuid.uuid4().hex[:10]}@mail.test",
            password=password,
        ))
        return CurrentUser(user.user_id, "student")
    return _make


@pytest.fixture
def make_professor(uow, make_student):
    async def _make(name="Carla", surname="Diaz", institution_id=None) -> CurrentUser:
        user = await make_student(name=name, surname=surname)
        await UserService(uow).become_professor(user.user_id, institution_id)
        return CurrentUser(user.user_id, "professor")
    return _make


@pytest.fixture
def make_course(uow):
    async def _make(professor: CurrentUser, units: int = 4, is_free: bool = True, price: float = 0):
        return await CourseService(uow).create(professor, CourseCreate(
            name="Python Fundamentals",
            description="From variables to classes",
            is_free=is_free,
            price=price,
            units=[UnitSchema(unit_number=i, name=f"Unit {i}") for i in range(1, units + 1)],
        ))
    return _make


@pytest.fixture
def make_questions(uow):
    async def _make(professor: CurrentUser, course_id: str, count: int = 4):
        """Alternates multiple choice (answer index 1) and open ended (answer 'python')"""
        service = QuestionService(uow)
        questions = []
        for i in range(count):
            if i % 2 == 0:
                data = QuestionCreate(
                    question_text=f"Pick the right option #{i}",
                    options=["a", "b", "c"],
                    correct_answer=1,
                )
            else:
                data = QuestionCreate(
                    question_text=f"Which language is this course about? #{i}",
                    question_type="open_ended",
                    correct_answer="Python",
                )
            questions.append(await service.create(course_id, professor, data))
        return questions
    return _make
