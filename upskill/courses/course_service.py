import logging
from typing import List, Optional

from upskill.core.database import UnitOfWork, generate_id, strip_many, strip_mongo_id
from upskill.core.errors import BusinessRuleError, ForbiddenError, NotFoundError
from upskill.core.security import CurrentUser
from upskill.courses.course_models import Course, Question, Unit
from upskill.courses.course_schemas import (
    CourseCreate,
    CourseUpdate,
    CourseView,
    QuestionCreate,
    QuestionProfessorView,
    QuestionStudentView,
    to_course_view,
    to_professor_view,
    to_student_view,
)
from upskill.users.user_service import UserService

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.db
        self.users = UserService(uow)

    async def get_course(self, course_id: str) -> dict:
        course = await self.db.courses.find_one({"course_id": course_id}, **self.uow.opts)
        if not course:
            raise NotFoundError("Course not found")
        return strip_mongo_id(course)

    async def professor_name(self, professor_id: str) -> Optional[str]:
        professor = await self.db.professors.find_one({"professor_id": professor_id}, **self.uow.opts)
        if not professor:
            return None
        user = await self.db.users.find_one({"user_id": professor["user_id"]}, **self.uow.opts)
        if not user:
            return None
        return f"{user['name']} {user['surname']}"

    async def assert_owner(self, course: dict, user: CurrentUser) -> None:
        """Owning professor or admin"""
        if user.is_admin:
            return
        professor = await self.users.get_professor_by_user(user.user_id)
        if not professor or professor["professor_id"] != course["professor_id"]:
            raise ForbiddenError("You do not own this course")

    async def is_owner(self, course: dict, user: CurrentUser) -> bool:
        try:
            await self.assert_owner(course, user)
        except ForbiddenError:
            return False
        return True

    # ==================== COURSES ====================

    async def create(self, user: CurrentUser, data: CourseCreate) -> CourseView:
        professor = await self.users.require_professor(user.user_id)

        course = Course(
            course_id=generate_id("CRS"),
            name=data.name,
            description=data.description,
            is_free=data.is_free,
            price=0 if data.is_free else data.price,
            professor_id=professor["professor_id"],
            institution_id=professor.get("institution_id"),
            units=[Unit(**u.dict()) for u in data.units],
        )
        await self.db.courses.insert_one(course.dict(), **self.uow.opts)

        logger.info(f"Course {course.course_id} created by {professor['professor_id']}")
        return to_course_view(course.dict(), await self.professor_name(course.professor_id))

    async def find_all(self) -> List[CourseView]:
        courses = strip_many(await self.db.courses.find({}).sort("created_at", -1).to_list(length=None))
        return [to_course_view(c, await self.professor_name(c["professor_id"])) for c in courses]

    async def find_one(self, course_id: str) -> CourseView:
        course = await self.get_course(course_id)
        return to_course_view(course, await self.professor_name(course["professor_id"]))

    async def update(self, course_id: str, user: CurrentUser, data: CourseUpdate) -> CourseView:
        course = await self.get_course(course_id)
        await self.assert_owner(course, user)

        updates = data.dict(exclude_none=True)
        if "units" in updates:
            updates["units"] = [Unit(**u).dict() for u in updates["units"]]
        if updates.get("is_free"):
            updates["price"] = 0

        if updates:
            await self.db.courses.update_one({"course_id": course_id}, {"$set": updates}, **self.uow.opts)
        return await self.find_one(course_id)

    async def remove(self, course_id: str, user: CurrentUser) -> None:
        course = await self.get_course(course_id)
        await self.assert_owner(course, user)

        if await self.db.enrollments.count_documents({"course_id": course_id}, **self.uow.opts):
            raise BusinessRuleError("Course has enrollments and cannot be deleted")

        async with self.uow.transaction():
            await self.db.questions.delete_many({"course_id": course_id}, **self.uow.opts)
            await self.db.courses.delete_one({"course_id": course_id}, **self.uow.opts)
        logger.info(f"Course {course_id} removed")


class QuestionService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.db
        self.courses = CourseService(uow)

    async def create(self, course_id: str, user: CurrentUser, data: QuestionCreate) -> QuestionProfessorView:
        course = await self.courses.get_course(course_id)
        await self.courses.assert_owner(course, user)

        if data.unit_number is not None:
            unit_numbers = {u["unit_number"] for u in course.get("units", [])}
            if data.unit_number not in unit_numbers:
                raise BusinessRuleError(f"Unit {data.unit_number} does not exist in this course")

        question = Question(question_id=generate_id("QST"), course_id=course_id, **data.dict())
        await self.db.questions.insert_one(question.dict(), **self.uow.opts)
        return to_professor_view(question.dict())

    async def find_by_course(self, course_id: str, user: CurrentUser) -> List[QuestionStudentView]:
        """Owners and admins see correct answers, everyone else the student view"""
        course = await self.courses.get_course(course_id)
        docs = await self.db.questions.find({"course_id": course_id}).sort("created_at", 1).to_list(length=None)

        if await self.courses.is_owner(course, user):
            return [to_professor_view(d) for d in docs]
        return [to_student_view(d) for d in docs]
