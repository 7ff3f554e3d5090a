from typing import Optional

from backoffice.database.connection import Database
from backoffice.database.record_store import RecordStore
from backoffice.domain.entities import User


class UserRepository(RecordStore[User]):

    def __init__(self, db: Database):
        super().__init__(db, User)

    async def find_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        return await self.find_by_condition({"email": email})

    async def find_by_google_id(self, google_id: str) -> Optional[User]:
        """Get a user by Google account id."""
        return await self.find_by_condition({"google_id": google_id})
