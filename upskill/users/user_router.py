from fastapi import APIRouter, Depends

from upskill.core.database import UnitOfWork, get_uow
from upskill.core.responses import created, ok
from upskill.core.security import CurrentUser, get_current_user
from upskill.users.user_schemas import BecomeProfessorRequest, ProfessorView
from upskill.users.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["Users"])


def get_user_service(uow: UnitOfWork = Depends(get_uow)) -> UserService:
    return UserService(uow)


@router.post("/me/professor", status_code=201)
async def become_professor(
    data: BecomeProfessorRequest,
    user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """
    Open a professor profile; the next issued token carries the new role
    """
    return created(await service.become_professor(user.user_id, data.institution_id))

@router.get("/me/professor")
async def get_my_professor_profile(
    user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return ok(ProfessorView(**await service.require_professor(user.user_id)))
