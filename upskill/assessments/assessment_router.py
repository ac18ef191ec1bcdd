from typing import Optional

from fastapi import APIRouter, Depends, Query

from upskill.assessments.assessment_schemas import (
    AnswerSubmission,
    AssessmentCreate,
    AssessmentUpdate,
    AttemptSortField,
    SaveAnswersRequest,
    SortOrder,
    SubmitAttemptRequest,
)
from upskill.assessments.assessment_service import AssessmentService
from upskill.core.database import UnitOfWork, get_uow
from upskill.core.dependencies import get_notifier
from upskill.core.responses import created, ok
from upskill.core.security import CurrentUser, get_current_user, require_roles

router = APIRouter(prefix="/api/assessments", tags=["Assessments"])

get_teaching_user = require_roles("professor", "admin")


def get_assessment_service(
    uow: UnitOfWork = Depends(get_uow),
    notifier=Depends(get_notifier),
) -> AssessmentService:
    return AssessmentService(uow, notifier)

# ==================== ASSESSMENT MANAGEMENT ====================

@router.post("", status_code=201)
async def create_assessment(
    data: AssessmentCreate,
    user: CurrentUser = Depends(get_teaching_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    """
    Create an assessment; enrolled students are mailed in the background
    """
    return created(await service.create(user, data))

@router.get("")
async def list_my_assessments(
    course_id: Optional[str] = Query(None),
    user: CurrentUser = Depends(get_teaching_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.find_all_for_professor(user, course_id))

@router.get("/pending")
async def pending_assessments(
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.find_pending_assessments(user.user_id))

@router.get("/course/{course_id}")
async def course_assessments(
    course_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.find_all_by_course(course_id, user))

# ==================== ATTEMPTS (STUDENT) ====================

@router.get("/attempts/me")
async def my_attempts(
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.get_attempts_by_student(user.user_id))

@router.get("/attempts/{attempt_id}")
async def get_attempt(
    attempt_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.get_attempt_with_answers(attempt_id, user))

@router.post("/attempts/{attempt_id}/answer")
async def submit_answer(
    attempt_id: str,
    data: AnswerSubmission,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.submit_answer(attempt_id, data.question_id, data.answer, user))

@router.put("/attempts/{attempt_id}/answers")
async def save_answers(
    attempt_id: str,
    data: SaveAnswersRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.save_multiple_answers(attempt_id, data.answers, user))

@router.post("/attempts/{attempt_id}/submit")
async def submit_attempt(
    attempt_id: str,
    data: SubmitAttemptRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.submit_attempt(attempt_id, data.answers, user))

# ==================== SINGLE ASSESSMENT ====================

@router.get("/{assessment_id}")
async def get_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    user: CurrentUser = Depends(get_current_user),
):
    return ok(await service.find_one(assessment_id))

@router.get("/{assessment_id}/me")
async def get_assessment_for_me(
    assessment_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    """
    Assessment with the caller's attempts count, best score and status
    """
    return ok(await service.get_assessment_with_student_metadata(assessment_id, user.user_id))

@router.patch("/{assessment_id}")
async def update_assessment(
    assessment_id: str,
    data: AssessmentUpdate,
    user: CurrentUser = Depends(get_teaching_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.update(assessment_id, user, data))

@router.delete("/{assessment_id}")
async def delete_assessment(
    assessment_id: str,
    user: CurrentUser = Depends(get_teaching_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    await service.remove(assessment_id, user)
    return ok({"assessment_id": assessment_id})

@router.post("/{assessment_id}/start", status_code=201)
async def start_attempt(
    assessment_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return created(await service.start_attempt(assessment_id, user.user_id))

@router.get("/{assessment_id}/attempts")
async def my_attempts_for_assessment(
    assessment_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.get_attempts_by_assessment(assessment_id, user.user_id))

@router.get("/{assessment_id}/attempts/all")
async def all_attempts(
    assessment_id: str,
    student_id: Optional[str] = Query(None),
    passed: Optional[bool] = Query(None),
    sort_by: Optional[AttemptSortField] = Query(None),
    order: SortOrder = Query(SortOrder.DESC),
    user: CurrentUser = Depends(get_teaching_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.get_all_attempts_for_professor(
        assessment_id, user, student_id=student_id, passed=passed, sort_by=sort_by, order=order
    ))

@router.get("/{assessment_id}/statistics")
async def assessment_statistics(
    assessment_id: str,
    user: CurrentUser = Depends(get_teaching_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return ok(await service.get_assessment_statistics(assessment_id, user))
