from fastapi import APIRouter, Depends, Response

from upskill.core.database import UnitOfWork, get_uow
from upskill.core.dependencies import get_notifier
from upskill.core.responses import created, ok
from upskill.core.security import CurrentUser, get_current_user, require_roles
from upskill.enrollments.enrollment_schemas import EnrollmentCreate, EnrollmentUpdate, UnitProgressRequest
from upskill.enrollments.enrollment_service import EnrollmentService

router = APIRouter(prefix="/api/enrollments", tags=["Enrollments"])


def get_enrollment_service(
    uow: UnitOfWork = Depends(get_uow),
    notifier=Depends(get_notifier),
) -> EnrollmentService:
    return EnrollmentService(uow, notifier)

# ==================== ENROLL ====================

@router.post("", status_code=201)
async def enroll(
    data: EnrollmentCreate,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """
    Enroll in a course; enrolling twice returns the existing enrollment with 200
    """
    enrollment, is_new = await service.enroll(user.user_id, data.course_id)
    if is_new:
        return created(enrollment)
    response.status_code = 200
    return ok(enrollment)

# ==================== READ ====================

@router.get("")
async def list_enrollments(
    user: CurrentUser = Depends(require_roles("admin")),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.find_all())

@router.get("/me")
async def my_enrollments(
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.find_by_student(user.user_id))

@router.get("/me/course/{course_id}")
async def my_enrollment_for_course(
    course_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.find_by_student_and_course(user.user_id, course_id))

@router.get("/course/{course_id}")
async def course_enrollments(
    course_id: str,
    user: CurrentUser = Depends(require_roles("professor", "admin")),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.find_by_course(course_id, user))

@router.get("/{enrollment_id}")
async def get_enrollment(
    enrollment_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.find_by_id(enrollment_id, user))

# ==================== UPDATE ====================

@router.patch("/{enrollment_id}/complete-unit")
async def complete_unit(
    enrollment_id: str,
    data: UnitProgressRequest,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.complete_unit(enrollment_id, data.unit_number, user))

@router.patch("/{enrollment_id}/uncomplete-unit")
async def uncomplete_unit(
    enrollment_id: str,
    data: UnitProgressRequest,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.uncomplete_unit(enrollment_id, data.unit_number, user))

@router.patch("/{enrollment_id}")
async def update_enrollment(
    enrollment_id: str,
    data: EnrollmentUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return ok(await service.update(enrollment_id, data, user))

@router.delete("/{enrollment_id}")
async def delete_enrollment(
    enrollment_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    await service.remove(enrollment_id, user)
    return ok({"enrollment_id": enrollment_id})
