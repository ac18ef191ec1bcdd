"""
Tests for course and question management
"""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from upskill.core.errors import BusinessRuleError, ForbiddenError, NotFoundError
from upskill.courses.course_schemas import CourseUpdate, QuestionCreate, UnitSchema
from upskill.courses.course_service import CourseService, QuestionService
from upskill.enrollments.enrollment_service import EnrollmentService


@pytest.fixture
def courses(uow):
    return CourseService(uow)


async def test_create_requires_professor_profile(courses, make_student, make_course):
    student = await make_student()
    with pytest.raises(NotFoundError):
        await make_course(student)


async def test_update_replaces_units_and_clears_price(courses, make_professor, make_course):
    professor = await make_professor()
    course = await make_course(professor, is_free=False, price=30)

    updated = await courses.update(course.course_id, professor, CourseUpdate(
        is_free=True,
        units=[UnitSchema(unit_number=2, name="Loops"), UnitSchema(unit_number=1, name="Basics")],
    ))

    assert updated.price == 0
    assert [u.unit_number for u in updated.units] == [1, 2]
    assert updated.professor_name == "Carla Diaz"


async def test_only_owner_modifies(courses, make_professor, make_course):
    owner = await make_professor()
    other = await make_professor(name="Luis", surname="Perez")
    course = await make_course(owner)

    with pytest.raises(ForbiddenError):
        await courses.update(course.course_id, other, CourseUpdate(name="Hijacked"))
    with pytest.raises(ForbiddenError):
        await courses.remove(course.course_id, other)


async def test_remove_blocked_by_enrollments(courses, uow, make_professor, make_course, make_student):
    professor = await make_professor()
    course = await make_course(professor)
    empty = await make_course(professor)
    student = await make_student()
    await EnrollmentService(uow, AsyncMock()).create(student.user_id, course.course_id)

    with pytest.raises(BusinessRuleError):
        await courses.remove(course.course_id, professor)

    await courses.remove(empty.course_id, professor)
    with pytest.raises(NotFoundError):
        await courses.find_one(empty.course_id)


def test_units_must_be_unique():
    with pytest.raises(ValidationError):
        CourseUpdate(units=[UnitSchema(unit_number=1, name="A"), UnitSchema(unit_number=1, name="B")])


def test_multiple_choice_needs_valid_index():
    with pytest.raises(ValidationError):
        QuestionCreate(question_text="Pick", options=["a", "b"], correct_answer=2)
    with pytest.raises(ValidationError):
        QuestionCreate(question_text="Pick", options=["a"], correct_answer=0)


async def test_question_views_depend_on_ownership(uow, make_professor, make_course, make_questions, make_student):
    professor = await make_professor()
    course = await make_course(professor)
    await make_questions(professor, course.course_id, count=2)
    questions = QuestionService(uow)

    owner_view = await questions.find_by_course(course.course_id, professor)
    student_view = await questions.find_by_course(course.course_id, await make_student())

    assert owner_view[0].correct_answer == 1
    assert all("correct_answer" not in q.dict() for q in student_view)


async def test_question_unit_must_exist(uow, make_professor, make_course):
    professor = await make_professor()
    course = await make_course(professor, units=2)

    with pytest.raises(BusinessRuleError):
        await QuestionService(uow).create(course.course_id, professor, QuestionCreate(
            question_text="Where?", question_type="open_ended", unit_number=5, correct_answer="here",
        ))
