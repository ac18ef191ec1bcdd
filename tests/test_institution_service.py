"""
Tests for institution CRUD and the duplicate guard
"""

import pytest

from upskill.core.errors import DuplicateInstitutionError
from upskill.institutions.institution_schemas import InstitutionCreate, InstitutionUpdate
from upskill.institutions.institution_service import InstitutionService

pytestmark = [pytest.mark.asyncio]

DESCRIPTION = "Public research university"


@pytest.fixture
def institutions(uow):
    return InstitutionService(uow)


async def create(institutions, name, aliases=None):
    return await institutions.create(InstitutionCreate(
        name=name, description=DESCRIPTION, aliases=aliases or []
    ))


async def test_create_stores_normalized_fields(institutions, db):
    view = await create(institutions, "Universidad Politécnica de Madrid", ["UPM", "upm", " Poli Madrid "])

    assert view.aliases == ["UPM", "upm", "Poli Madrid"]
    assert view.professor_count == 0
    stored = await db.institutions.find_one({"institution_id": view.institution_id})
    assert stored["normalized_name"] == "universidad politecnica de madrid"
    assert stored["normalized_aliases"] == ["upm", "poli madrid"]


async def test_exact_duplicate_after_normalization(institutions):
    await create(institutions, "Universidad de Chile")
    with pytest.raises(DuplicateInstitutionError) as exc:
        await create(institutions, "  UNIVERSIDAD de   chile!")
    assert exc.value.status_code == 409


async def test_near_duplicate_name_rejected(institutions):
    await create(institutions, "Universidad Nacional")
    with pytest.raises(DuplicateInstitutionError) as exc:
        await create(institutions, "Universidad Nacionall")
    assert "Universidad Nacional" in exc.value.detail


async def test_different_name_accepted(institutions):
    await create(institutions, "Harvard University")
    view = await create(institutions, "Stanford University")
    assert view.name == "Stanford University"
    assert len(await institutions.find_all()) == 2


async def test_alias_clashes_are_exact_only(institutions):
    await create(institutions, "Massachusetts Institute of Technology", ["MIT Boston"])

    with pytest.raises(DuplicateInstitutionError):
        await create(institutions, "MIT Boston")
    with pytest.raises(DuplicateInstitutionError):
        await create(institutions, "Boston Tech Institute", ["mit boston"])

    # Close to an alias but not to a name
    view = await create(institutions, "MIT Bostan")
    assert view.name == "MIT Bostan"


async def test_update_excludes_itself(institutions):
    view = await create(institutions, "Universidad de Lima")
    updated = await institutions.update(
        view.institution_id, InstitutionUpdate(name="Universidad de Lima", aliases=["ULima"])
    )
    assert updated.aliases == ["ULima"]

    other = await create(institutions, "Pontificia Universidad Catolica")
    with pytest.raises(DuplicateInstitutionError):
        await institutions.update(other.institution_id, InstitutionUpdate(name="Universidad de Lim"))


async def test_remove_detaches_professors_and_courses(institutions, make_professor, make_course, db):
    institution = await create(institutions, "Universidad de Chile")
    professor = await make_professor(institution_id=institution.institution_id)
    course = await make_course(professor)

    assert (await institutions.find_one(institution.institution_id)).professor_count == 1

    await institutions.remove(institution.institution_id)

    assert await db.institutions.count_documents({}) == 0
    assert (await db.professors.find_one({"user_id": professor.user_id}))["institution_id"] is None
    assert (await db.courses.find_one({"course_id": course.course_id}))["institution_id"] is None
