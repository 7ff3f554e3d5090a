from backoffice.database.connection import Database
from backoffice.database.record_store import RecordStore
from backoffice.domain.entities import Planogram


class PlanogramRepository(RecordStore[Planogram]):

    def __init__(self, db: Database):
        super().__init__(db, Planogram)

    async def find_by_store(self, store_id: str) -> list[Planogram]:
        """Get all planograms of a store."""
        return await self.find_all_by_filter({"store_id": store_id})
