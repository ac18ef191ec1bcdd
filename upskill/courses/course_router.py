from fastapi import APIRouter, Depends

from upskill.core.database import UnitOfWork, get_uow
from upskill.core.responses import created, ok
from upskill.core.security import CurrentUser, get_current_user, require_roles
from upskill.courses.course_schemas import CourseCreate, CourseUpdate, QuestionCreate
from upskill.courses.course_service import CourseService, QuestionService

router = APIRouter(prefix="/api/courses", tags=["Courses"])

get_teaching_user = require_roles("professor", "admin")


def get_course_service(uow: UnitOfWork = Depends(get_uow)) -> CourseService:
    return CourseService(uow)


def get_question_service(uow: UnitOfWork = Depends(get_uow)) -> QuestionService:
    return QuestionService(uow)

# ==================== COURSES ====================

@router.post("", status_code=201)
async def create_course(
    data: CourseCreate,
    user: CurrentUser = Depends(get_teaching_user),
    service: CourseService = Depends(get_course_service),
):
    return created(await service.create(user, data))

@router.get("")
async def list_courses(service: CourseService = Depends(get_course_service)):
    return ok(await service.find_all())

@router.get("/{course_id}")
async def get_course(course_id: str, service: CourseService = Depends(get_course_service)):
    return ok(await service.find_one(course_id))

@router.patch("/{course_id}")
async def update_course(
    course_id: str,
    data: CourseUpdate,
    user: CurrentUser = Depends(get_teaching_user),
    service: CourseService = Depends(get_course_service),
):
    return ok(await service.update(course_id, user, data))

@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    user: CurrentUser = Depends(get_teaching_user),
    service: CourseService = Depends(get_course_service),
):
    await service.remove(course_id, user)
    return ok({"course_id": course_id})

# ==================== QUESTIONS ====================

@router.post("/{course_id}/questions", status_code=201)
async def create_question(
    course_id: str,
    data: QuestionCreate,
    user: CurrentUser = Depends(get_teaching_user),
    service: QuestionService = Depends(get_question_service),
):
    return created(await service.create(course_id, user, data))

@router.get("/{course_id}/questions")
async def list_questions(
    course_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: QuestionService = Depends(get_question_service),
):
    return ok(await service.find_by_course(course_id, user))
