from typing import Optional

from backoffice.database.connection import Database
from backoffice.database.record_store import RecordStore
from backoffice.domain.entities import Store


class StoreRepository(RecordStore[Store]):

    def __init__(self, db: Database):
        super().__init__(db, Store)

    async def find_by_name(self, name: str) -> Optional[Store]:
        """Get a store by its exact name."""
        return await self.find_by_condition({"name": name})
