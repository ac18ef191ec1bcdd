from fastapi import APIRouter, Depends

from upskill.core.database import UnitOfWork, get_uow
from upskill.core.responses import created, ok
from upskill.core.security import CurrentUser, require_roles
from upskill.institutions.institution_schemas import InstitutionCreate, InstitutionUpdate
from upskill.institutions.institution_service import InstitutionService

router = APIRouter(prefix="/api/institutions", tags=["Institutions"])


def get_institution_service(uow: UnitOfWork = Depends(get_uow)) -> InstitutionService:
    return InstitutionService(uow)


@router.post("", status_code=201)
async def create_institution(
    data: InstitutionCreate,
    user: CurrentUser = Depends(require_roles("professor", "admin")),
    service: InstitutionService = Depends(get_institution_service),
):
    """
    Rejects names that exactly or nearly match an existing institution
    """
    return created(await service.create(data))

@router.get("")
async def list_institutions(service: InstitutionService = Depends(get_institution_service)):
    return ok(await service.find_all())

@router.get("/{institution_id}")
async def get_institution(institution_id: str, service: InstitutionService = Depends(get_institution_service)):
    return ok(await service.find_one(institution_id))

@router.patch("/{institution_id}")
async def update_institution(
    institution_id: str,
    data: InstitutionUpdate,
    user: CurrentUser = Depends(require_roles("admin")),
    service: InstitutionService = Depends(get_institution_service),
):
    return ok(await service.update(institution_id, data))

@router.delete("/{institution_id}")
async def delete_institution(
    institution_id: str,
    user: CurrentUser = Depends(require_roles("admin")),
    service: InstitutionService = Depends(get_institution_service),
):
    await service.remove(institution_id)
    return ok({"institution_id": institution_id})
