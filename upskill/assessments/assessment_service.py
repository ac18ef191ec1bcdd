"""
Assessment attempt engine
Eligibility, answer recording, grading and read-side metadata
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from upskill.assessments.assessment_grading import check_answer, grade_attempt, round_half_up
from upskill.assessments.assessment_models import (
    Assessment,
    AssessmentAttempt,
    AttemptAnswer,
    AttemptStatus,
)
from upskill.assessments.assessment_schemas import (
    AnswerSubmission,
    AnswerView,
    AssessmentCreate,
    AssessmentStatistics,
    AssessmentUpdate,
    AssessmentView,
    AttemptDetail,
    AttemptSortField,
    AttemptStudent,
    AttemptView,
    PendingAssessment,
    ProfessorAttemptView,
    QuestionStats,
    SortOrder,
    StartedAttempt,
    StudentAssessmentView,
    StudentAttemptStats,
    to_answer_view,
    to_assessment_view,
    to_attempt_view,
)
from upskill.core.clock import utcnow
from upskill.core.database import UnitOfWork, generate_id, strip_many, strip_mongo_id
from upskill.core.errors import (
    AssessmentUnavailableError,
    AttemptNotInProgressError,
    BadRequestError,
    ConcurrentModificationError,
    ForbiddenError,
    MaxAttemptsReachedError,
    NotEnrolledError,
    NotFoundError,
)
from upskill.core.security import CurrentUser
from upskill.courses.course_schemas import to_professor_view, to_student_view
from upskill.courses.course_service import CourseService
from upskill.enrollments.enrollment_models import EnrollmentState
from upskill.users.user_service import UserService

logger = logging.getLogger(__name__)

# Fields that can never be cleared on update
_REQUIRED_FIELDS = ("title", "question_ids", "passing_score", "is_active")


def _minutes_between(start: Optional[datetime], end: Optional[datetime]) -> int:
    if not start or not end:
        return 0
    return int((end - start).total_seconds() // 60)


class AssessmentService:
    def __init__(self, uow: UnitOfWork, notifier=None):
        self.uow = uow
        self.db = uow.db
        self.notifier = notifier
        self.users = UserService(uow)
        self.courses = CourseService(uow)

    # ==================== HELPERS ====================

    async def _get_assessment(self, assessment_id: str) -> dict:
        assessment = await self.db.assessments.find_one({"assessment_id": assessment_id}, **self.uow.opts)
        if not assessment:
            raise NotFoundError("Assessment not found")
        return strip_mongo_id(assessment)

    async def _get_attempt(self, attempt_id: str) -> dict:
        attempt = await self.db.assessment_attempts.find_one({"attempt_id": attempt_id}, **self.uow.opts)
        if not attempt:
            raise NotFoundError("Attempt not found")
        return strip_mongo_id(attempt)

    async def _questions(self, assessment: dict) -> List[dict]:
        """Questions in the assessment's own order"""
        ids = assessment.get("question_ids", [])
        docs = await self.db.questions.find({"question_id": {"$in": ids}}).to_list(length=None)
        by_id = {d["question_id"]: d for d in docs}
        return [by_id[qid] for qid in ids if qid in by_id]

    async def _validate_questions(self, course_id: str, question_ids: List[str]) -> None:
        found = await self.db.questions.count_documents(
            {"question_id": {"$in": question_ids}, "course_id": course_id}, **self.uow.opts
        )
        if found != len(question_ids):
            raise BadRequestError("Some questions do not exist or belong to another course")

    async def _assert_course_owner(self, course_id: str, user: CurrentUser) -> dict:
        course = await self.courses.get_course(course_id)
        await self.courses.assert_owner(course, user)
        return course

    async def _assert_attempt_owner(self, attempt: dict, user: CurrentUser) -> None:
        student = await self.users.get_student_by_user(user.user_id)
        if not student or student["student_id"] != attempt["student_id"]:
            raise ForbiddenError("This attempt belongs to another student")

    async def _count_attempts(self, assessment_id: str, student_id: str) -> int:
        return await self.db.assessment_attempts.count_documents(
            {"assessment_id": assessment_id, "student_id": student_id}, **self.uow.opts
        )

    async def _best_attempt(self, assessment_id: str, student_id: str) -> Optional[dict]:
        docs = await self.db.assessment_attempts.find({
            "assessment_id": assessment_id,
            "student_id": student_id,
            "status": AttemptStatus.SUBMITTED,
        }).sort("score", -1).limit(1).to_list(length=1)
        return strip_mongo_id(docs[0]) if docs else None

    async def _users_for_students(self, student_ids: List[str]) -> Dict[str, dict]:
        students = await self.db.students.find({"student_id": {"$in": list(student_ids)}}).to_list(length=None)
        user_ids = [s["user_id"] for s in students]
        users = await self.db.users.find({"user_id": {"$in": user_ids}}).to_list(length=None)
        users_by_id = {u["user_id"]: u for u in users}
        return {
            s["student_id"]: users_by_id[s["user_id"]]
            for s in students if s["user_id"] in users_by_id
        }

    # ==================== CRUD ====================

    async def create(self, user: CurrentUser, data: AssessmentCreate) -> AssessmentView:
        course = await self._assert_course_owner(data.course_id, user)
        await self._validate_questions(data.course_id, data.question_ids)

        assessment = Assessment(assessment_id=generate_id("ASM"), **data.dict())
        await self.db.assessments.insert_one(assessment.dict(), **self.uow.opts)
        logger.info(f"Assessment {assessment.assessment_id} created in course {data.course_id}")

        await self._notify_new_assessment(course, assessment.dict())
        return to_assessment_view(assessment.dict())

    async def _notify_new_assessment(self, course: dict, assessment: dict) -> None:
        """Best effort: a failure here never fails the creation"""
        if self.notifier is None:
            return
        try:
            enrollments = await self.db.enrollments.find({
                "course_id": course["course_id"],
                "state": EnrollmentState.ENROLLED,
            }).to_list(length=None)
            if not enrollments:
                logger.info(f"No enrolled students to notify in course {course['course_id']}")
                return
            users = await self._users_for_students([e["student_id"] for e in enrollments])
        except PyMongoError:
            logger.exception(f"Could not load recipients for assessment {assessment['assessment_id']}")
            return

        await self.notifier.notify_new_assessment(list(users.values()), course, assessment)

    async def find_one(self, assessment_id: str) -> AssessmentView:
        return to_assessment_view(await self._get_assessment(assessment_id))

    async def find_all_by_course(self, course_id: str, user: CurrentUser) -> List[AssessmentView]:
        """Owners see every assessment, everyone else only active ones"""
        course = await self.courses.get_course(course_id)
        query = {"course_id": course_id}
        if not await self.courses.is_owner(course, user):
            query["is_active"] = True
        docs = await self.db.assessments.find(query).sort("created_at", 1).to_list(length=None)
        return [to_assessment_view(d) for d in docs]

    async def find_all_for_professor(self, user: CurrentUser, course_id: Optional[str] = None) -> List[AssessmentView]:
        query: Dict = {}
        if not user.is_admin:
            professor = await self.users.require_professor(user.user_id)
            courses = await self.db.courses.find({"professor_id": professor["professor_id"]}).to_list(length=None)
            query["course_id"] = {"$in": [c["course_id"] for c in courses]}
        if course_id:
            if "course_id" in query and course_id not in query["course_id"]["$in"]:
                raise ForbiddenError("You do not own this course")
            query["course_id"] = course_id

        docs = await self.db.assessments.find(query).sort("created_at", -1).to_list(length=None)
        return [to_assessment_view(d) for d in docs]

    async def update(self, assessment_id: str, user: CurrentUser, data: AssessmentUpdate) -> AssessmentView:
        assessment = await self._get_assessment(assessment_id)
        await self._assert_course_owner(assessment["course_id"], user)

        updates = data.dict(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in updates and updates[field] is None:
                updates.pop(field)

        if updates.get("question_ids") is not None:
            if not updates["question_ids"]:
                raise BadRequestError("An assessment needs at least one question")
            await self._validate_questions(assessment["course_id"], updates["question_ids"])

        start = updates.get("available_from", assessment.get("available_from"))
        end = updates.get("available_until", assessment.get("available_until"))
        if start and end and end <= start:
            raise BadRequestError("available_until must be after available_from")

        if updates:
            await self.db.assessments.update_one(
                {"assessment_id": assessment_id}, {"$set": updates}, **self.uow.opts
            )
        return await self.find_one(assessment_id)

    async def remove(self, assessment_id: str, user: CurrentUser) -> None:
        assessment = await self._get_assessment(assessment_id)
        await self._assert_course_owner(assessment["course_id"], user)

        attempts = await self.db.assessment_attempts.find(
            {"assessment_id": assessment_id}, {"attempt_id": 1}
        ).to_list(length=None)
        attempt_ids = [a["attempt_id"] for a in attempts]

        async with self.uow.transaction():
            if attempt_ids:
                await self.db.attempt_answers.delete_many({"attempt_id": {"$in": attempt_ids}}, **self.uow.opts)
                await self.db.assessment_attempts.delete_many({"assessment_id": assessment_id}, **self.uow.opts)
            await self.db.assessments.delete_one({"assessment_id": assessment_id}, **self.uow.opts)

        logger.info(f"Assessment {assessment_id} removed with {len(attempt_ids)} attempts")

    # ==================== ATTEMPTS ====================

    async def start_attempt(self, assessment_id: str, user_id: str) -> StartedAttempt:
        """
        Open a new attempt for the caller

        Raises:
            NotEnrolledError: no enrollment in the assessment's course
            AssessmentUnavailableError: outside the window or inactive
            MaxAttemptsReachedError: attempt limit used up
        """
        student = await self.users.require_student(user_id)
        assessment = await self._get_assessment(assessment_id)
        student_id = student["student_id"]

        enrollment = await self.db.enrollments.find_one(
            {"student_id": student_id, "course_id": assessment["course_id"]}, **self.uow.opts
        )
        if not enrollment:
            logger.warning(f"Attempt blocked: student {student_id} not enrolled in {assessment['course_id']}")
            raise NotEnrolledError()

        now = utcnow()
        if assessment.get("available_from") and assessment["available_from"] > now:
            raise AssessmentUnavailableError("Assessment is not yet available")
        if assessment.get("available_until") and assessment["available_until"] < now:
            raise AssessmentUnavailableError("Assessment is no longer available")
        if not assessment.get("is_active", True):
            raise AssessmentUnavailableError("Assessment is not active")

        prior = await self._count_attempts(assessment_id, student_id)
        max_attempts = assessment.get("max_attempts")
        if max_attempts and prior >= max_attempts:
            raise MaxAttemptsReachedError()

        attempt = AssessmentAttempt(
            attempt_id=generate_id("ATT"),
            assessment_id=assessment_id,
            student_id=student_id,
            attempt_number=prior + 1,
        )
        try:
            await self.db.assessment_attempts.insert_one(attempt.dict(), **self.uow.opts)
        except DuplicateKeyError:
            # Unique (assessment, student, attempt_number): a parallel start won
            raise ConcurrentModificationError("Another attempt was started at the same time")

        saved = await self.db.attempt_answers.find({"attempt_id": attempt.attempt_id}).to_list(length=None)
        questions = await self._questions(assessment)

        logger.info(f"Attempt {attempt.attempt_id} (#{attempt.attempt_number}) started on {assessment_id}")
        return StartedAttempt(
            attempt=to_attempt_view(attempt.dict()),
            title=assessment["title"],
            duration_minutes=assessment.get("duration_minutes"),
            passing_score=assessment.get("passing_score", 70),
            questions=[to_student_view(q) for q in questions],
            answers=[to_answer_view(a, reveal=False) for a in saved],
            time_spent=0,
        )

    async def _grade_answer(self, attempt_id: str, assessment: dict, question_id: str, answer) -> AttemptAnswer:
        """Check one answer against its question without writing anything"""
        if question_id not in assessment.get("question_ids", []):
            raise BadRequestError(f"Question {question_id} is not part of this assessment")

        question = await self.db.questions.find_one({"question_id": question_id}, **self.uow.opts)
        if not question:
            raise NotFoundError("Question not found")

        return AttemptAnswer(
            answer_id=generate_id("ANS"),
            attempt_id=attempt_id,
            question_id=question_id,
            answer=answer,
            is_correct=check_answer(answer, question["correct_answer"]),
        )

    async def _write_answer(self, graded: AttemptAnswer) -> AnswerView:
        row = graded.dict()
        # One row per (attempt, question); resubmitting overwrites it
        await self.db.attempt_answers.update_one(
            {"attempt_id": graded.attempt_id, "question_id": graded.question_id},
            {
                "$set": {k: row[k] for k in ("answer", "is_correct", "answered_at")},
                "$setOnInsert": {"answer_id": row["answer_id"]},
            },
            upsert=True,
            **self.uow.opts
        )
        return AnswerView(question_id=graded.question_id, answer=graded.answer, answered_at=graded.answered_at)

    async def _touch_in_progress(self, attempt_id: str) -> None:
        """Status check done by the database, not on a copy read earlier"""
        result = await self.db.assessment_attempts.update_one(
            {"attempt_id": attempt_id, "status": AttemptStatus.IN_PROGRESS},
            {"$set": {"last_activity_at": utcnow()}},
            **self.uow.opts
        )
        if result.matched_count == 0:
            raise AttemptNotInProgressError()

    async def _record_answers(self, attempt: dict, items: List[AnswerSubmission]) -> List[AnswerView]:
        if attempt["status"] != AttemptStatus.IN_PROGRESS:
            raise AttemptNotInProgressError()

        assessment = await self._get_assessment(attempt["assessment_id"])
        graded = [
            await self._grade_answer(attempt["attempt_id"], assessment, item.question_id, item.answer)
            for item in items
        ]

        async with self.uow.transaction():
            await self._touch_in_progress(attempt["attempt_id"])
            return [await self._write_answer(g) for g in graded]

    async def submit_answer(self, attempt_id: str, question_id: str, answer, user: CurrentUser) -> AnswerView:
        attempt = await self._get_attempt(attempt_id)
        await self._assert_attempt_owner(attempt, user)
        saved = await self._record_answers(attempt, [AnswerSubmission(question_id=question_id, answer=answer)])
        return saved[0]

    async def save_multiple_answers(
        self, attempt_id: str, answers: List[AnswerSubmission], user: CurrentUser
    ) -> List[AnswerView]:
        """Auto-save: same rules as submit_answer, batched"""
        attempt = await self._get_attempt(attempt_id)
        await self._assert_attempt_owner(attempt, user)
        saved = await self._record_answers(attempt, answers)
        logger.info(f"Attempt {attempt_id}: auto-saved {len(saved)} answers")
        return saved

    async def submit_attempt(
        self, attempt_id: str, answers: List[AnswerSubmission], user: CurrentUser
    ) -> AttemptView:
        """
        Record the final answers and grade the attempt

        The attempt is claimed (IN_PROGRESS -> SUBMITTED) before any answer
        is written, so only the caller that wins the claim touches the
        answers and the score. A second submit, sequential or concurrent,
        raises AttemptNotInProgressError and changes nothing.
        """
        attempt = await self._get_attempt(attempt_id)
        await self._assert_attempt_owner(attempt, user)
        if attempt["status"] != AttemptStatus.IN_PROGRESS:
            raise AttemptNotInProgressError()

        assessment = await self._get_assessment(attempt["assessment_id"])
        graded = [
            await self._grade_answer(attempt_id, assessment, item.question_id, item.answer)
            for item in answers
        ]
        question_ids = assessment.get("question_ids", [])

        async with self.uow.transaction():
            claimed = await self.db.assessment_attempts.find_one_and_update(
                {"attempt_id": attempt_id, "status": AttemptStatus.IN_PROGRESS},
                {"$set": {"status": AttemptStatus.SUBMITTED, "submitted_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
                **self.uow.opts
            )
            if not claimed:
                raise AttemptNotInProgressError()

            for g in graded:
                await self._write_answer(g)

            correct = await self.db.attempt_answers.count_documents({
                "attempt_id": attempt_id,
                "question_id": {"$in": question_ids},
                "is_correct": True,
            }, **self.uow.opts)
            score, passed = grade_attempt(correct, len(question_ids), assessment.get("passing_score", 70))

            await self.db.assessment_attempts.update_one(
                {"attempt_id": attempt_id},
                {"$set": {"score": score, "passed": passed}},
                **self.uow.opts
            )

        logger.info(f"Attempt {attempt_id} submitted: score={score} passed={passed}")
        claimed.update(score=score, passed=passed)
        return to_attempt_view(strip_mongo_id(claimed))

    # ==================== READ SIDE ====================

    async def get_attempts_by_assessment(self, assessment_id: str, user_id: str) -> List[AttemptView]:
        student = await self.users.require_student(user_id)
        await self._get_assessment(assessment_id)
        docs = await self.db.assessment_attempts.find({
            "assessment_id": assessment_id,
            "student_id": student["student_id"],
        }).sort("attempt_number", 1).to_list(length=None)
        return [to_attempt_view(d) for d in docs]

    async def get_attempts_by_student(self, user_id: str) -> List[AttemptView]:
        student = await self.users.require_student(user_id)
        docs = await self.db.assessment_attempts.find(
            {"student_id": student["student_id"]}
        ).sort("started_at", -1).to_list(length=None)
        return [to_attempt_view(d) for d in docs]

    async def get_attempt_with_answers(self, attempt_id: str, user: CurrentUser) -> AttemptDetail:
        """Correct answers are only shown once the attempt is submitted"""
        attempt = await self._get_attempt(attempt_id)
        assessment = await self._get_assessment(attempt["assessment_id"])

        try:
            await self._assert_attempt_owner(attempt, user)
        except ForbiddenError:
            await self._assert_course_owner(assessment["course_id"], user)

        submitted = attempt["status"] == AttemptStatus.SUBMITTED
        questions = await self._questions(assessment)
        answers = await self.db.attempt_answers.find({"attempt_id": attempt_id}).to_list(length=None)

        return AttemptDetail(
            attempt=to_attempt_view(attempt),
            assessment=to_assessment_view(assessment),
            questions=[to_professor_view(q) if submitted else to_student_view(q) for q in questions],
            answers=[to_answer_view(a, reveal=submitted) for a in answers],
            time_spent=_minutes_between(attempt.get("started_at"), attempt.get("submitted_at")),
        )

    async def get_assessment_with_student_metadata(self, assessment_id: str, user_id: str) -> StudentAssessmentView:
        student = await self.users.require_student(user_id)
        assessment = await self._get_assessment(assessment_id)
        student_id = student["student_id"]

        attempts_count = await self._count_attempts(assessment_id, student_id)
        best = await self._best_attempt(assessment_id, student_id)
        max_attempts = assessment.get("max_attempts")
        now = utcnow()

        status = "available"
        if assessment.get("available_until") and now > assessment["available_until"]:
            status = "expired"
        elif best and best.get("passed"):
            status = "completed"
        elif max_attempts and attempts_count >= max_attempts:
            status = "no_attempts_left"

        questions = await self._questions(assessment)
        return StudentAssessmentView(
            **to_assessment_view(assessment).dict(),
            questions=[to_student_view(q) for q in questions],
            attempts_count=attempts_count,
            attempts_remaining=max_attempts - attempts_count if max_attempts else None,
            best_score=best.get("score") if best else None,
            last_attempt_date=best.get("submitted_at") if best else None,
            status=status,
        )

    async def find_pending_for_student(self, student_id: str) -> List[PendingAssessment]:
        """
        Open work across the student's ENROLLED courses: active, inside the
        window, attempts left and not yet passed. Closest deadline first,
        open-ended ones last.
        """
        enrollments = await self.db.enrollments.find({
            "student_id": student_id,
            "state": EnrollmentState.ENROLLED,
        }).to_list(length=None)
        if not enrollments:
            return []

        course_ids = [e["course_id"] for e in enrollments]
        courses = {
            c["course_id"]: c
            for c in await self.db.courses.find({"course_id": {"$in": course_ids}}).to_list(length=None)
        }
        assessments = await self.db.assessments.find({
            "course_id": {"$in": course_ids},
            "is_active": True,
        }).to_list(length=None)

        now = utcnow()
        pending = []
        for assessment in assessments:
            if assessment.get("available_from") and now < assessment["available_from"]:
                continue
            if assessment.get("available_until") and now > assessment["available_until"]:
                continue

            attempts_count = await self._count_attempts(assessment["assessment_id"], student_id)
            max_attempts = assessment.get("max_attempts")
            if max_attempts and attempts_count >= max_attempts:
                continue

            best = await self._best_attempt(assessment["assessment_id"], student_id)
            if best and best.get("passed"):
                continue

            course = courses.get(assessment["course_id"], {})
            pending.append(PendingAssessment(
                assessment=to_assessment_view(assessment),
                course_id=assessment["course_id"],
                course_name=course.get("name", ""),
                attempts_count=attempts_count,
                attempts_remaining=max_attempts - attempts_count if max_attempts else None,
                best_score=best.get("score") if best else None,
                last_attempt_date=best.get("submitted_at") if best else None,
            ))

        pending.sort(key=lambda p: (
            p.assessment.available_until is None,
            p.assessment.available_until or datetime.max,
        ))
        return pending

    async def find_pending_assessments(self, user_id: str) -> List[PendingAssessment]:
        student = await self.users.require_student(user_id)
        pending = await self.find_pending_for_student(student["student_id"])
        logger.info(f"Student {student['student_id']}: {len(pending)} pending assessments")
        return pending

    async def get_assessment_statistics(self, assessment_id: str, user: CurrentUser) -> AssessmentStatistics:
        """Aggregates over submitted attempts only"""
        assessment = await self._get_assessment(assessment_id)
        await self._assert_course_owner(assessment["course_id"], user)

        attempts = strip_many(await self.db.assessment_attempts.find({
            "assessment_id": assessment_id,
            "status": AttemptStatus.SUBMITTED,
        }).to_list(length=None))

        total = len(attempts)
        scores = [a.get("score") or 0 for a in attempts]
        passed_count = sum(1 for a in attempts if a.get("passed"))

        by_student: Dict[str, List[dict]] = {}
        for attempt in attempts:
            by_student.setdefault(attempt["student_id"], []).append(attempt)
        users = await self._users_for_students(list(by_student))

        attempts_by_student = []
        for student_id, student_attempts in by_student.items():
            best = max(student_attempts, key=lambda a: a.get("score") or 0)
            last = max(student_attempts, key=lambda a: a.get("submitted_at") or datetime.min)
            user_doc = users.get(student_id)
            attempts_by_student.append(StudentAttemptStats(
                student_id=student_id,
                student_name=f"{user_doc['name']} {user_doc['surname']}" if user_doc else None,
                attempts=len(student_attempts),
                best_score=best.get("score") or 0,
                passed=bool(best.get("passed")),
                last_attempt_date=last.get("submitted_at"),
            ))

        answers = await self.db.attempt_answers.find({
            "attempt_id": {"$in": [a["attempt_id"] for a in attempts]},
        }).to_list(length=None)
        question_docs = {q["question_id"]: q for q in await self._questions(assessment)}

        counters: Dict[str, List[int]] = {}
        for answer in answers:
            counter = counters.setdefault(answer["question_id"], [0, 0])
            counter[1] += 1
            if answer.get("is_correct"):
                counter[0] += 1

        question_statistics = [
            QuestionStats(
                question_id=question_id,
                question_text=question_docs.get(question_id, {}).get("question_text"),
                correct_answers=correct,
                total_answers=answered,
                success_rate=round_half_up(correct / answered * 100) if answered else 0,
            )
            for question_id, (correct, answered) in counters.items()
        ]

        return AssessmentStatistics(
            assessment_id=assessment_id,
            title=assessment["title"],
            total_attempts=total,
            unique_students=len(by_student),
            average_score=round_half_up(sum(scores) / total) if total else 0,
            highest_score=max(scores) if scores else 0,
            lowest_score=min(scores) if scores else 0,
            pass_rate=round_half_up(passed_count / total * 100) if total else 0,
            attempts_by_student=attempts_by_student,
            question_statistics=question_statistics,
        )

    async def get_all_attempts_for_professor(
        self,
        assessment_id: str,
        user: CurrentUser,
        student_id: Optional[str] = None,
        passed: Optional[bool] = None,
        sort_by: Optional[AttemptSortField] = None,
        order: SortOrder = SortOrder.DESC,
    ) -> List[ProfessorAttemptView]:
        assessment = await self._get_assessment(assessment_id)
        await self._assert_course_owner(assessment["course_id"], user)

        query = {"assessment_id": assessment_id, "status": AttemptStatus.SUBMITTED}
        if student_id:
            query["student_id"] = student_id
        if passed is not None:
            query["passed"] = passed

        attempts = await self.db.assessment_attempts.find(query).to_list(length=None)
        users = await self._users_for_students({a["student_id"] for a in attempts})

        results = []
        for attempt in attempts:
            user_doc = users.get(attempt["student_id"], {})
            results.append(ProfessorAttemptView(
                attempt_id=attempt["attempt_id"],
                student=AttemptStudent(
                    student_id=attempt["student_id"],
                    name=user_doc.get("name"),
                    surname=user_doc.get("surname"),
                ),
                assessment_id=assessment_id,
                assessment_title=assessment["title"],
                attempt_number=attempt["attempt_number"],
                status=attempt["status"],
                started_at=attempt["started_at"],
                submitted_at=attempt.get("submitted_at"),
                score=attempt.get("score"),
                passed=attempt.get("passed"),
                time_spent=_minutes_between(attempt.get("started_at"), attempt.get("submitted_at")),
            ))

        field = (sort_by or AttemptSortField.SUBMITTED_AT).value
        present = [r for r in results if getattr(r, field) is not None]
        missing = [r for r in results if getattr(r, field) is None]
        present.sort(key=lambda r: getattr(r, field), reverse=(order == SortOrder.DESC))
        return present + missing
