from fastapi import APIRouter, Depends

from backoffice.api.deps import get_auth_service, get_current_user
from backoffice.domain.entities import User
from backoffice.domain.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    GoogleLoginRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from backoffice.services.auth import AuthService
from backoffice.services.relations import to_payload

router = APIRouter()


@router.post("/register", response_model=LoginResponse, status_code=201)
async def register(data: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create an account and return an access token. A confirmation email follows."""
    return await auth.register(data.model_dump())


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    user = await auth.validate_user(data.email, data.password)
    return auth.login(user)


@router.post("/admin/login", response_model=LoginResponse)
async def admin_login(data: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Log in to the back office; only ADMIN accounts are accepted."""
    return await auth.admin_login(data.email, data.password)


@router.post("/google", response_model=LoginResponse)
async def google_login(data: GoogleLoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Log in with a Google ID token, linking an existing account by its verified email."""
    return await auth.google_login(data.id_token)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return to_payload(user)


@router.post("/change-password", response_model=UserResponse)
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    updated = await auth.change_password(user.id, data.new_password, data.old_password)
    return to_payload(updated)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    """Email a password reset link (once per cooldown window)."""
    sent = await auth.send_forgot_password_email(data.email)
    if not sent:
        return {"message": "Password reset email could not be sent"}
    return {"message": "Password reset email sent"}


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.confirm_forgotten_password(data.token, data.new_password)
