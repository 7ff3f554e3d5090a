from fastapi import Depends, HTTPException, status

from backoffice.core.config import get_settings
from backoffice.core.security import require_auth
from backoffice.database.connection import Database, get_db
from backoffice.domain.entities import User, UserRole
from backoffice.repositories import (
    PlanogramRepository,
    StoreRepository,
    SubmissionRepository,
    UploadRepository,
    UserRepository,
)
from backoffice.services.auth import AuthService
from backoffice.services.email import EmailService
from backoffice.services.google_auth import GoogleTokenVerifier
from backoffice.services.planograms import PlanogramService
from backoffice.services.storage import StorageService, get_storage_service
from backoffice.services.stores import StoreService
from backoffice.services.submissions import SubmissionsService
from backoffice.services.users import UsersService


def get_database() -> Database:
    return get_db()


def get_storage() -> StorageService:
    return get_storage_service()


def get_email_service() -> EmailService:
    return EmailService(get_settings())


def get_users_service(
    db: Database = Depends(get_database),
    storage: StorageService = Depends(get_storage),
    email: EmailService = Depends(get_email_service),
) -> UsersService:
    return UsersService(UserRepository(db), storage, email, get_settings())


def get_google_verifier() -> GoogleTokenVerifier:
    return GoogleTokenVerifier(get_settings())


def get_auth_service(
    users: UsersService = Depends(get_users_service),
    email: EmailService = Depends(get_email_service),
    google: GoogleTokenVerifier = Depends(get_google_verifier),
) -> AuthService:
    return AuthService(users, email, get_settings(), google)


def get_store_service(db: Database = Depends(get_database)) -> StoreService:
    return StoreService(StoreRepository(db), UserRepository(db))


def get_planogram_service(db: Database = Depends(get_database)) -> PlanogramService:
    return PlanogramService(PlanogramRepository(db), StoreRepository(db), UserRepository(db))


def get_submissions_service(
    db: Database = Depends(get_database),
    storage: StorageService = Depends(get_storage),
) -> SubmissionsService:
    return SubmissionsService(
        SubmissionRepository(db),
        UploadRepository(db),
        UserRepository(db),
        StoreRepository(db),
        PlanogramRepository(db),
        storage,
    )


async def get_current_user(
    auth_payload: dict = Depends(require_auth),
    db: Database = Depends(get_database),
) -> User:
    """Load the user named by the access token's ``sub`` claim."""
    user = await UserRepository(db).find_by_id(auth_payload["sub"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
