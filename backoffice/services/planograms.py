import logging
import uuid
from typing import Any, Mapping, Optional

from backoffice.core.time_utils import utcnow
from backoffice.database.connection import ExecuteResult
from backoffice.repositories import PlanogramRepository, StoreRepository, UserRepository
from backoffice.services.errors import NotFoundError
from backoffice.services.relations import (
    STORE_SUMMARY_FIELDS,
    USER_SUMMARY_FIELDS,
    Relation,
    RelationPopulator,
)

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("name", "description")


class PlanogramService:

    def __init__(self, planograms: PlanogramRepository, stores: StoreRepository, users: UserRepository):
        self.planograms = planograms
        self.relations = RelationPopulator([
            Relation("store", "store_id", stores, STORE_SUMMARY_FIELDS),
            Relation("created_by", "created_by_id", users, USER_SUMMARY_FIELDS),
            Relation("updated_by", "updated_by_id", users, USER_SUMMARY_FIELDS),
        ])

    async def find_all(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "ASC",
    ) -> list[dict]:
        planograms = await self.planograms.find_all_with_search_and_sort(
            search=search,
            search_columns=SEARCH_COLUMNS,
            sort_by=sort_by,
            sort_order=sort_order,
            filter=filter,
        )
        return await self.relations.populate(planograms)

    async def find_by_id(self, planogram_id: str) -> dict:
        planogram = await self.planograms.find_by_id(planogram_id)
        if not planogram:
            raise NotFoundError(f"Planogram {planogram_id} not found")
        return await self.relations.populate_one(planogram)

    async def create(self, data: Mapping[str, Any], actor_id: Optional[str] = None) -> dict:
        now = utcnow()
        row = {
            "id": str(uuid.uuid4()),
            **data,
            "created_at": now,
            "updated_at": now,
        }
        if actor_id:
            row["created_by_id"] = actor_id
            row["updated_by_id"] = actor_id
        planogram = await self.planograms.create(row)
        logger.info(f"Created planogram {planogram.id} for store {planogram.store_id}")
        return await self.relations.populate_one(planogram)

    async def update(self, planogram_id: str, data: Mapping[str, Any], actor_id: Optional[str] = None) -> dict:
        changes = {**data, "updated_at": utcnow()}
        if actor_id:
            changes["updated_by_id"] = actor_id
        planogram = await self.planograms.update(planogram_id, changes)
        if not planogram:
            raise NotFoundError(f"Planogram {planogram_id} not found")
        return await self.relations.populate_one(planogram)

    async def remove(self, planogram_id: str) -> ExecuteResult:
        return await self.planograms.delete(planogram_id)
