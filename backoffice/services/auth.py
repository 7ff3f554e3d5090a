"""
Authentication workflows: credentials login, registration, password changes
and resets, and linking Google accounts.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Mapping, Optional

from jose import JWTError

from backoffice.core.config import Settings, get_settings
from backoffice.core.security import PASSWORD_RESET, create_token, decode_token, hash_password, verify_password
from backoffice.core.time_utils import hours_since, utcnow
from backoffice.domain.entities import User, UserRole
from backoffice.services.email import EmailService
from backoffice.services.google_auth import GoogleTokenVerifier
from backoffice.services.errors import AuthenticationError, BusinessRuleError, ConflictError, NotFoundError
from backoffice.services.relations import to_payload
from backoffice.services.users import UsersService

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(
        self,
        users: UsersService,
        email: EmailService,
        settings: Settings | None = None,
        google: GoogleTokenVerifier | None = None,
    ):
        self.users = users
        self.email = email
        self.settings = settings or get_settings()
        self.google = google or GoogleTokenVerifier(self.settings)
        self._background: set[asyncio.Task] = set()

    async def validate_user(self, email: str, password: str) -> User:
        user = await self.users.find_by_email(email)
        if not user or not user.password_hash:
            raise AuthenticationError("Invalid credentials")
        if not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return user

    def login(self, user: User) -> dict:
        token = create_token(user.id, settings=self.settings, email=user.email)
        return {"user": to_payload(user), "access_token": token}

    async def admin_login(self, email: str, password: str) -> dict:
        user = await self.validate_user(email, password)
        if user.role != UserRole.ADMIN:
            raise AuthenticationError("Admin access required")
        return self.login(user)

    async def register(self, data: Mapping[str, Any]) -> dict:
        """Create an account and log it in; the confirmation email is sent in the background."""
        fields = dict(data)
        if await self.users.find_by_email(fields["email"]):
            raise ConflictError("A user with this email already exists")

        fields["password_hash"] = hash_password(fields.pop("password"))
        fields["role"] = UserRole.ADMIN
        user = await self.users.create(fields)
        logger.info(f"Registered user {user.id}")

        task = asyncio.create_task(self._send_confirmation(user.id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return self.login(user)

    async def _send_confirmation(self, user_id: str) -> None:
        try:
            await self.users.send_confirmation_email(user_id)
        except Exception as e:
            logger.error(f"Failed to send confirmation email to user {user_id}: {e}")

    async def create_admin_user(self, data: Mapping[str, Any], actor_id: Optional[str] = None) -> User:
        fields = dict(data)
        if await self.users.find_by_email(fields["email"]):
            raise ConflictError("A user with this email already exists")
        fields["password_hash"] = hash_password(fields.pop("password"))
        fields["role"] = UserRole.ADMIN
        fields["is_confirmed"] = True
        if actor_id:
            fields["created_by_id"] = actor_id
            fields["updated_by_id"] = actor_id
        user = await self.users.create(fields)
        logger.info(f"Created admin user {user.id}")
        return user

    async def change_password(self, user_id: str, new_password: str, old_password: Optional[str] = None) -> User:
        """Accounts with a password and no Google link must present the old password."""
        user = await self.users.find_by_id(user_id)
        if user.password_hash and not user.google_id:
            if not old_password:
                raise AuthenticationError("Old password is required")
            if not verify_password(old_password, user.password_hash):
                raise AuthenticationError("Invalid old password")

        return await self.users.update(user_id, {"password_hash": hash_password(new_password)})

    async def google_login(self, token: str) -> dict:
        """Log in with a Google ID token, verified before any account is looked up."""
        profile = await asyncio.to_thread(self.google.verify, token)
        user = await self.validate_google_user(
            google_id=profile.google_id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            picture=profile.picture,
        )
        return self.login(user)

    async def validate_google_user(
        self,
        google_id: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> User:
        """Find or create the account for a verified Google profile, linking it by email."""
        user = await self.users.users.find_by_google_id(google_id)
        if user:
            return user
        user = await self.users.find_by_email(email)
        if not user:
            return await self.users.create({
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "google_id": google_id,
                "profile_picture": picture,
            })
        if not user.google_id:
            user = await self.users.update(user.id, {
                "google_id": google_id,
                "first_name": first_name or user.first_name,
                "last_name": last_name or user.last_name,
                "profile_picture": picture or user.profile_picture,
            })
        return user

    async def send_forgot_password_email(self, email: str) -> bool:
        user = await self.users.find_by_email(email)
        if not user:
            raise NotFoundError("User not found")

        cooldown = self.settings.email_cooldown_hours
        if user.last_password_reset_at and hours_since(user.last_password_reset_at) < cooldown:
            raise BusinessRuleError(
                f"Please wait {cooldown} hours before requesting another password reset"
            )

        token = create_token(
            user.id,
            purpose=PASSWORD_RESET,
            expires_in=timedelta(hours=self.settings.password_reset_expires_hours),
            settings=self.settings,
        )
        await self.users.update(user.id, {"last_password_reset_at": utcnow()})
        return self.email.send_password_reset_email(user.email, token, user.lang)

    async def confirm_forgotten_password(self, token: str, new_password: str) -> dict:
        if not token or not new_password:
            raise AuthenticationError("Invalid request: Missing required fields")
        try:
            payload = decode_token(token, purpose=PASSWORD_RESET, settings=self.settings)
        except JWTError as e:
            logger.warning(f"Password reset token rejected: {e}")
            raise AuthenticationError("Invalid or expired token")

        await self.users.find_by_id(payload["sub"])
        await self.users.update(payload["sub"], {"password_hash": hash_password(new_password)})
        logger.info(f"Password reset for user {payload['sub']}")
        return {"success": True}
