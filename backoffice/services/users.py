import logging
import uuid
from datetime import timedelta
from typing import Any, Mapping, Optional

from jose import JWTError

from backoffice.core.config import Settings, get_settings
from backoffice.core.security import EMAIL_CONFIRMATION, create_token, decode_token
from backoffice.core.time_utils import hours_since, utcnow
from backoffice.database.connection import ExecuteResult
from backoffice.domain.entities import User
from backoffice.repositories import UserRepository
from backoffice.services.email import EmailService
from backoffice.services.errors import BusinessRuleError, NotFoundError
from backoffice.services.relations import to_payload
from backoffice.services.storage import StorageService

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("first_name", "last_name", "email")
PROFILE_PICTURE_FOLDER = "profile-pictures"


class UsersService:

    def __init__(
        self,
        users: UserRepository,
        storage: StorageService,
        email: EmailService,
        settings: Settings | None = None,
    ):
        self.users = users
        self.storage = storage
        self.email = email
        self.settings = settings or get_settings()

    async def find_all(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "ASC",
    ) -> list[dict]:
        users = await self.users.find_all_with_search_and_sort(
            search=search,
            search_columns=SEARCH_COLUMNS,
            sort_by=sort_by,
            sort_order=sort_order,
            filter=filter,
        )
        return [to_payload(user) for user in users]

    async def find_by_id(self, user_id: str) -> User:
        user = await self.users.find_by_id(user_id)
        if not user:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.users.find_by_email(email)

    async def create(self, data: Mapping[str, Any]) -> User:
        now = utcnow()
        return await self.users.create({
            "id": str(uuid.uuid4()),
            **data,
            "created_at": now,
            "updated_at": now,
        })

    async def update(self, user_id: str, data: Mapping[str, Any]) -> User:
        user = await self.users.update(user_id, data)
        if not user:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user

    async def remove(self, user_id: str) -> ExecuteResult:
        await self.find_by_id(user_id)
        result = await self.users.delete(user_id)
        logger.info(f"Deleted user {user_id}")
        return result

    async def send_confirmation_email(self, user_id: str) -> bool:
        """
        Email a confirmation link, at most once per cooldown window.

        Returns True right away when the account is already confirmed.
        """
        user = await self.find_by_id(user_id)
        if user.is_confirmed:
            return True

        cooldown = self.settings.email_cooldown_hours
        if user.last_email_confirmation_at and hours_since(user.last_email_confirmation_at) < cooldown:
            raise BusinessRuleError(
                f"Please wait {cooldown} hours before requesting another confirmation email"
            )

        token = create_token(
            user.id,
            purpose=EMAIL_CONFIRMATION,
            expires_in=timedelta(hours=self.settings.email_confirmation_expires_hours),
            settings=self.settings,
        )
        await self.update(user.id, {"last_email_confirmation_at": utcnow()})
        return self.email.send_confirmation_email(user.email, token, user.lang)

    async def confirm_email(self, token: str) -> bool:
        try:
            payload = decode_token(token, purpose=EMAIL_CONFIRMATION, settings=self.settings)
        except JWTError as e:
            logger.warning(f"Email confirmation token rejected: {e}")
            return False

        user = await self.users.update(payload["sub"], {"is_confirmed": True})
        if not user:
            logger.warning(f"Email confirmation for unknown user {payload['sub']}")
            return False
        logger.info(f"Confirmed email for user {user.id}")
        return True

    async def update_profile_picture(
        self,
        user_id: str,
        data: bytes,
        filename: str,
        content_type: str,
    ) -> User:
        """Replace the user's picture, removing the previous file."""
        user = await self.find_by_id(user_id)
        if user.profile_picture:
            self.storage.delete_file(self.storage.path_from_url(user.profile_picture))

        stored = self.storage.upload_file(data, filename, content_type, folder=PROFILE_PICTURE_FOLDER)
        return await self.update(user_id, {"profile_picture": stored.url})

    async def delete_profile_picture(self, user_id: str) -> User:
        user = await self.find_by_id(user_id)
        if user.profile_picture:
            self.storage.delete_file(self.storage.path_from_url(user.profile_picture))
        return await self.update(user_id, {"profile_picture": ""})
