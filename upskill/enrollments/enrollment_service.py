"""
Enrollment tracker
One enrollment per (student, course), unit completion and derived progress
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Set, Tuple

from pymongo.errors import DuplicateKeyError

from upskill.core.database import UnitOfWork, generate_id, strip_many, strip_mongo_id
from upskill.core.errors import (
    BadRequestError,
    ConcurrentModificationError,
    ForbiddenError,
    NotFoundError,
    SelfEnrollmentError,
)
from upskill.core.security import CurrentUser
from upskill.courses.course_service import CourseService
from upskill.enrollments.enrollment_models import Enrollment, EnrollmentState
from upskill.enrollments.enrollment_schemas import EnrollmentUpdate, EnrollmentView, to_enrollment_view
from upskill.users.user_service import UserService

logger = logging.getLogger(__name__)

MAX_WRITE_RETRIES = 3


def compute_progress(completed: int, total_units: int) -> int:
    """Percentage rounded half up; a course without units reports 0"""
    if total_units <= 0:
        return 0
    return min(100, int(math.floor(completed / total_units * 100 + 0.5)))


class EnrollmentService:
    def __init__(self, uow: UnitOfWork, notifier=None):
        self.uow = uow
        self.db = uow.db
        self.notifier = notifier
        self.users = UserService(uow)
        self.courses = CourseService(uow)

    # ==================== HELPERS ====================

    async def _get(self, enrollment_id: str) -> dict:
        enrollment = await self.db.enrollments.find_one({"enrollment_id": enrollment_id}, **self.uow.opts)
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        return strip_mongo_id(enrollment)

    async def _view(self, enrollment: dict, course: Optional[dict] = None) -> EnrollmentView:
        if course is None:
            course = strip_mongo_id(
                await self.db.courses.find_one({"course_id": enrollment["course_id"]}, **self.uow.opts)
            )
        professor_name = await self.courses.professor_name(course["professor_id"]) if course else None
        return to_enrollment_view(enrollment, course, professor_name)

    async def _views(self, enrollments: List[dict]) -> List[EnrollmentView]:
        course_ids = list({e["course_id"] for e in enrollments})
        courses = await self.db.courses.find({"course_id": {"$in": course_ids}}).to_list(length=None)
        by_id = {c["course_id"]: strip_mongo_id(c) for c in courses}

        names: Dict[str, Optional[str]] = {}
        views = []
        for enrollment in enrollments:
            course = by_id.get(enrollment["course_id"])
            if course and course["professor_id"] not in names:
                names[course["professor_id"]] = await self.courses.professor_name(course["professor_id"])
            views.append(to_enrollment_view(
                enrollment, course, names.get(course["professor_id"]) if course else None
            ))
        return views

    async def _is_own(self, enrollment: dict, user: CurrentUser) -> bool:
        student = await self.users.get_student_by_user(user.user_id)
        return bool(student and student["student_id"] == enrollment["student_id"])

    async def assert_can_view(self, enrollment: dict, user: CurrentUser) -> None:
        """Admin, the enrolled student, or the course owner"""
        if user.is_admin or await self._is_own(enrollment, user):
            return
        course = await self.courses.get_course(enrollment["course_id"])
        await self.courses.assert_owner(course, user)

    async def assert_can_modify(self, enrollment: dict, user: CurrentUser) -> None:
        if user.is_admin or await self._is_own(enrollment, user):
            return
        raise ForbiddenError("You can only modify your own enrollments")

    # ==================== CREATE ====================

    async def create(self, user_id: str, course_id: str) -> EnrollmentView:
        view, _ = await self.enroll(user_id, course_id)
        return view

    async def enroll(self, user_id: str, course_id: str) -> Tuple[EnrollmentView, bool]:
        """
        Enroll the caller's student profile in a course

        Idempotent: an existing enrollment for the pair is returned unchanged.
        The flag tells whether this call created the enrollment.

        Raises:
            NotFoundError: no student profile, or unknown course
            SelfEnrollmentError: caller's professor profile owns the course
        """
        student = await self.users.require_student(user_id)
        course = await self.courses.get_course(course_id)

        professor = await self.users.get_professor_by_user(user_id)
        if professor and professor["professor_id"] == course["professor_id"]:
            raise SelfEnrollmentError()

        existing = await self.db.enrollments.find_one(
            {"student_id": student["student_id"], "course_id": course_id}, **self.uow.opts
        )
        if existing:
            return await self._view(strip_mongo_id(existing), course), False

        enrollment = Enrollment(
            enrollment_id=generate_id("ENR"),
            student_id=student["student_id"],
            course_id=course_id,
        )

        try:
            async with self.uow.transaction():
                await self.db.enrollments.insert_one(enrollment.dict(), **self.uow.opts)
                await self.db.students.update_one(
                    {"student_id": student["student_id"]},
                    {"$addToSet": {"courses": course_id}},
                    **self.uow.opts
                )
        except DuplicateKeyError:
            # A concurrent request created it first
            existing = await self.db.enrollments.find_one(
                {"student_id": student["student_id"], "course_id": course_id}
            )
            return await self._view(strip_mongo_id(existing), course), False

        logger.info(f"Student {student['student_id']} enrolled in {course_id}")

        if course.get("is_free") and self.notifier is not None:
            user = await self.users.get_user(user_id)
            await self.notifier.notify_course_enrollment(user, course)

        return await self._view(enrollment.dict(), course), True

    # ==================== READ ====================

    async def find_all(self) -> List[EnrollmentView]:
        docs = await self.db.enrollments.find({}).sort("enrolled_at", -1).to_list(length=None)
        return await self._views(strip_many(docs))

    async def find_by_id(self, enrollment_id: str, user: CurrentUser) -> EnrollmentView:
        enrollment = await self._get(enrollment_id)
        await self.assert_can_view(enrollment, user)
        return await self._view(enrollment)

    async def find_by_student(self, user_id: str) -> List[EnrollmentView]:
        student = await self.users.require_student(user_id)
        docs = await self.db.enrollments.find(
            {"student_id": student["student_id"]}
        ).sort("enrolled_at", -1).to_list(length=None)
        return await self._views(strip_many(docs))

    async def find_by_course(self, course_id: str, user: CurrentUser) -> List[EnrollmentView]:
        course = await self.courses.get_course(course_id)
        await self.courses.assert_owner(course, user)
        docs = await self.db.enrollments.find({"course_id": course_id}).sort("enrolled_at", 1).to_list(length=None)
        return await self._views(strip_many(docs))

    async def find_by_student_and_course(self, user_id: str, course_id: str) -> EnrollmentView:
        student = await self.users.require_student(user_id)
        enrollment = await self.db.enrollments.find_one(
            {"student_id": student["student_id"], "course_id": course_id}, **self.uow.opts
        )
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        return await self._view(strip_mongo_id(enrollment))

    # ==================== UNIT PROGRESS ====================

    async def _apply_unit_change(
        self,
        enrollment_id: str,
        user: CurrentUser,
        change: Callable[[Set[int], Set[int]], bool],
    ) -> EnrollmentView:
        """
        Read-modify-write on completed_units guarded by the version field.
        ``change`` mutates the completed set in place and returns False
        when there is nothing to write.
        """
        enrollment = await self._get(enrollment_id)
        await self.assert_can_modify(enrollment, user)
        course = await self.courses.get_course(enrollment["course_id"])
        unit_numbers = {u["unit_number"] for u in course.get("units", [])}

        for _ in range(MAX_WRITE_RETRIES):
            completed = set(enrollment.get("completed_units", []))
            if not change(completed, unit_numbers):
                return await self._view(enrollment, course)

            progress = compute_progress(len(completed & unit_numbers), len(unit_numbers))
            state = enrollment["state"]
            if progress == 100 and state == EnrollmentState.ENROLLED:
                state = EnrollmentState.COMPLETED
            elif progress < 100 and state == EnrollmentState.COMPLETED:
                state = EnrollmentState.ENROLLED

            version = enrollment.get("version", 0)
            result = await self.db.enrollments.update_one(
                {"enrollment_id": enrollment_id, "version": version},
                {
                    "$set": {
                        "completed_units": sorted(completed),
                        "progress": progress,
                        "state": state,
                    },
                    "$inc": {"version": 1},
                },
                **self.uow.opts
            )
            if result.modified_count == 1:
                enrollment.update(
                    completed_units=sorted(completed),
                    progress=progress,
                    state=state,
                    version=version + 1,
                )
                return await self._view(enrollment, course)

            # Someone else wrote in between; start again from fresh data
            enrollment = await self._get(enrollment_id)

        logger.warning(f"Enrollment {enrollment_id}: unit update lost {MAX_WRITE_RETRIES} races")
        raise ConcurrentModificationError()

    async def complete_unit(self, enrollment_id: str, unit_number: int, user: CurrentUser) -> EnrollmentView:
        def mark(completed: Set[int], unit_numbers: Set[int]) -> bool:
            if unit_number not in unit_numbers:
                raise BadRequestError(f"Unit {unit_number} does not exist in this course")
            if unit_number in completed:
                return False
            completed.add(unit_number)
            return True

        return await self._apply_unit_change(enrollment_id, user, mark)

    async def uncomplete_unit(self, enrollment_id: str, unit_number: int, user: CurrentUser) -> EnrollmentView:
        def unmark(completed: Set[int], unit_numbers: Set[int]) -> bool:
            if unit_number not in completed:
                return False
            completed.discard(unit_number)
            return True

        return await self._apply_unit_change(enrollment_id, user, unmark)

    # ==================== MANUAL OVERRIDE ====================

    async def update(self, enrollment_id: str, data: EnrollmentUpdate, user: CurrentUser) -> EnrollmentView:
        """
        Manual state / grade / progress override

        DROPPED takes the course out of the student's active set,
        COMPLETED forces progress to 100, and progress writes on an
        already completed enrollment are ignored.
        """
        enrollment = await self._get(enrollment_id)

        if data.grade is not None:
            # Grades come from the course owner
            course = await self.courses.get_course(enrollment["course_id"])
            await self.courses.assert_owner(course, user)
        else:
            await self.assert_can_modify(enrollment, user)

        current_state = enrollment["state"]
        updates = {}

        if data.state is not None:
            updates["state"] = data.state
            if data.state == EnrollmentState.COMPLETED:
                updates["progress"] = 100

        if data.grade is not None:
            updates["grade"] = data.grade

        if data.progress is not None and "progress" not in updates:
            if current_state == EnrollmentState.COMPLETED:
                logger.info(f"Enrollment {enrollment_id}: ignoring progress write on completed enrollment")
            else:
                updates["progress"] = data.progress

        if not updates:
            return await self._view(enrollment)

        new_state = updates.get("state", current_state)
        async with self.uow.transaction():
            await self.db.enrollments.update_one(
                {"enrollment_id": enrollment_id},
                {"$set": updates, "$inc": {"version": 1}},
                **self.uow.opts
            )
            if new_state == EnrollmentState.DROPPED:
                await self.db.students.update_one(
                    {"student_id": enrollment["student_id"]},
                    {"$pull": {"courses": enrollment["course_id"]}},
                    **self.uow.opts
                )
            elif current_state == EnrollmentState.DROPPED:
                # Re-activated
                await self.db.students.update_one(
                    {"student_id": enrollment["student_id"]},
                    {"$addToSet": {"courses": enrollment["course_id"]}},
                    **self.uow.opts
                )

        return await self._view(await self._get(enrollment_id))

    async def remove(self, enrollment_id: str, user: CurrentUser) -> None:
        enrollment = await self._get(enrollment_id)
        await self.assert_can_modify(enrollment, user)

        async with self.uow.transaction():
            await self.db.students.update_one(
                {"student_id": enrollment["student_id"]},
                {"$pull": {"courses": enrollment["course_id"]}},
                **self.uow.opts
            )
            await self.db.enrollments.delete_one({"enrollment_id": enrollment_id}, **self.uow.opts)

        logger.info(f"Enrollment {enrollment_id} removed")
