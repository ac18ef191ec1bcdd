import logging
from typing import List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from upskill.core.database import UnitOfWork, generate_id, strip_mongo_id
from upskill.core.errors import BadRequestError, DuplicateInstitutionError, NotFoundError
from upskill.institutions.institution_models import Institution
from upskill.institutions.institution_schemas import InstitutionCreate, InstitutionUpdate, InstitutionView
from upskill.institutions.institution_similarity import find_near_duplicate, normalize_name

logger = logging.getLogger(__name__)


class InstitutionService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.db

    async def _get(self, institution_id: str) -> dict:
        institution = await self.db.institutions.find_one({"institution_id": institution_id}, **self.uow.opts)
        if not institution:
            raise NotFoundError("Institution not found")
        return strip_mongo_id(institution)

    async def _view(self, doc: dict) -> InstitutionView:
        professors = await self.db.professors.count_documents(
            {"institution_id": doc["institution_id"]}, **self.uow.opts
        )
        return InstitutionView(
            institution_id=doc["institution_id"],
            name=doc["name"],
            description=doc["description"],
            aliases=doc.get("aliases", []),
            professor_count=professors,
            created_at=doc.get("created_at"),
        )

    async def check_duplicates(
        self, name: str, aliases: List[str], exclude_id: Optional[str] = None
    ) -> Tuple[str, List[str]]:
        """
        Reject exact clashes of the name or any alias with existing names
        and aliases, then near matches of the name against existing names.
        Returns the normalized name and aliases.
        """
        normalized = normalize_name(name)
        if not normalized:
            raise BadRequestError("Name must contain letters or digits")

        normalized_aliases = []
        for alias in aliases:
            value = normalize_name(alias)
            if value and value != normalized and value not in normalized_aliases:
                normalized_aliases.append(value)

        query = {"institution_id": {"$ne": exclude_id}} if exclude_id else {}
        existing = await self.db.institutions.find(
            query, {"name": 1, "normalized_name": 1, "normalized_aliases": 1}
        ).to_list(length=None)

        candidates = {normalized, *normalized_aliases}
        for institution in existing:
            taken = {institution["normalized_name"], *institution.get("normalized_aliases", [])}
            if candidates & taken:
                logger.warning(f"Institution name clash with {institution['name']!r}")
                raise DuplicateInstitutionError(
                    f"An institution named '{institution['name']}' already exists"
                )

        # Aliases of other institutions are not fuzzy matched
        similar = find_near_duplicate(
            normalized, ((i["normalized_name"], i["name"]) for i in existing)
        )
        if similar:
            logger.warning(f"Institution name {name!r} too close to {similar!r}")
            raise DuplicateInstitutionError(
                f"An institution with a similar name already exists: '{similar}'"
            )

        return normalized, normalized_aliases

    # ==================== CRUD ====================

    async def create(self, data: InstitutionCreate) -> InstitutionView:
        normalized, normalized_aliases = await self.check_duplicates(data.name, data.aliases)

        institution = Institution(
            institution_id=generate_id("INS"),
            name=data.name,
            normalized_name=normalized,
            description=data.description,
            aliases=data.aliases,
            normalized_aliases=normalized_aliases,
        )
        try:
            await self.db.institutions.insert_one(institution.dict(), **self.uow.opts)
        except DuplicateKeyError:
            raise DuplicateInstitutionError()

        logger.info(f"Institution {institution.institution_id} created: {data.name}")
        return await self._view(institution.dict())

    async def find_all(self) -> List[InstitutionView]:
        docs = await self.db.institutions.find({}).sort("name", 1).to_list(length=None)
        return [await self._view(d) for d in docs]

    async def find_one(self, institution_id: str) -> InstitutionView:
        return await self._view(await self._get(institution_id))

    async def update(self, institution_id: str, data: InstitutionUpdate) -> InstitutionView:
        current = await self._get(institution_id)
        updates = data.dict(exclude_none=True)

        if "name" in updates or "aliases" in updates:
            name = updates.get("name", current["name"])
            aliases = updates.get("aliases", current.get("aliases", []))
            normalized, normalized_aliases = await self.check_duplicates(
                name, aliases, exclude_id=institution_id
            )
            updates["normalized_name"] = normalized
            updates["normalized_aliases"] = normalized_aliases

        if updates:
            try:
                await self.db.institutions.update_one(
                    {"institution_id": institution_id}, {"$set": updates}, **self.uow.opts
                )
            except DuplicateKeyError:
                raise DuplicateInstitutionError()
        return await self.find_one(institution_id)

    async def remove(self, institution_id: str) -> None:
        await self._get(institution_id)

        async with self.uow.transaction():
            await self.db.professors.update_many(
                {"institution_id": institution_id}, {"$set": {"institution_id": None}}, **self.uow.opts
            )
            await self.db.courses.update_many(
                {"institution_id": institution_id}, {"$set": {"institution_id": None}}, **self.uow.opts
            )
            await self.db.institutions.delete_one({"institution_id": institution_id}, **self.uow.opts)

        logger.info(f"Institution {institution_id} removed")
