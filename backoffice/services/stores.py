import logging
import uuid
from typing import Any, Mapping, Optional

from backoffice.core.time_utils import utcnow
from backoffice.database.connection import ExecuteResult
from backoffice.repositories import StoreRepository, UserRepository
from backoffice.services.errors import NotFoundError
from backoffice.services.relations import USER_SUMMARY_FIELDS, Relation, RelationPopulator

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("name", "address")


class StoreService:

    def __init__(self, stores: StoreRepository, users: UserRepository):
        self.stores = stores
        self.relations = RelationPopulator([
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
        stores = await self.stores.find_all_with_search_and_sort(
            search=search,
            search_columns=SEARCH_COLUMNS,
            sort_by=sort_by,
            sort_order=sort_order,
            filter=filter,
        )
        return await self.relations.populate(stores)

    async def find_by_id(self, store_id: str) -> dict:
        store = await self.stores.find_by_id(store_id)
        if not store:
            raise NotFoundError(f"Store {store_id} not found")
        return await self.relations.populate_one(store)

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
        store = await self.stores.create(row)
        logger.info(f"Created store {store.id}")
        return await self.relations.populate_one(store)

    async def update(self, store_id: str, data: Mapping[str, Any], actor_id: Optional[str] = None) -> dict:
        changes = {**data, "updated_at": utcnow()}
        if actor_id:
            changes["updated_by_id"] = actor_id
        store = await self.stores.update(store_id, changes)
        if not store:
            raise NotFoundError(f"Store {store_id} not found")
        return await self.relations.populate_one(store)

    async def remove(self, store_id: str) -> ExecuteResult:
        """Delete a store; its planograms, submissions and uploads cascade."""
        result = await self.stores.delete(store_id)
        logger.info(f"Deleted store {store_id} ({result.rowcount} rows)")
        return result
