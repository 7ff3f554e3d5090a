from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel

from backoffice.api.deps import get_auth_service, get_current_user, get_users_service, require_admin
from backoffice.domain.entities import User, UserRole
from backoffice.domain.schemas import AdminUserCreate, MessageResponse, ProfileUpdate, UserResponse
from backoffice.services.auth import AuthService
from backoffice.services.relations import to_payload
from backoffice.services.users import UsersService

router = APIRouter()

PROFILE_PICTURE_TYPES = ("image/png", "image/jpeg", "image/webp")
PROFILE_PICTURE_MAX_BYTES = 5 * 1024 * 1024


class ConfirmEmailRequest(BaseModel):
    token: str


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: Optional[UserRole] = None,
    is_confirmed: Optional[bool] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = Query(default="ASC", pattern=r'^(ASC|DESC|asc|desc)$'),
    _admin: User = Depends(require_admin),
    users: UsersService = Depends(get_users_service),
):
    """List users, filtered, searched by name or email and sorted (admin only)."""
    return await users.find_all(
        filter={"role": role, "is_confirmed": is_confirmed},
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("", response_model=UserResponse, status_code=201)
async def create_admin_user(
    data: AdminUserCreate,
    admin: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    """Create another administrator account (admin only)."""
    user = await auth.create_admin_user(data.model_dump(), actor_id=admin.id)
    return to_payload(user)


@router.get("/profile", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)):
    return to_payload(user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        return to_payload(user)
    return to_payload(await users.update(user.id, update_data))


@router.post("/send-confirmation-email", response_model=MessageResponse)
async def send_confirmation_email(
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
):
    if user.is_confirmed:
        return {"message": "Email already confirmed"}
    sent = await users.send_confirmation_email(user.id)
    if not sent:
        raise HTTPException(status_code=502, detail="Confirmation email could not be sent")
    return {"message": "Confirmation email sent"}


@router.post("/confirm-email", response_model=MessageResponse)
async def confirm_email(data: ConfirmEmailRequest, users: UsersService = Depends(get_users_service)):
    if not await users.confirm_email(data.token):
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    return {"message": "Email confirmed"}


@router.post("/profile-picture", response_model=UserResponse)
async def upload_profile_picture(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
):
    """Upload a new profile picture for the current user."""
    if file.content_type not in PROFILE_PICTURE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPG and WebP are allowed."
        )
    data = await file.read()
    if len(data) > PROFILE_PICTURE_MAX_BYTES:
        raise HTTPException(status_code=400, detail="File too large. Maximum size is 5MB.")

    updated = await users.update_profile_picture(user.id, data, file.filename, file.content_type)
    return to_payload(updated)


@router.delete("/profile-picture", response_model=UserResponse)
async def delete_profile_picture(
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
):
    return to_payload(await users.delete_profile_picture(user.id))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _admin: User = Depends(require_admin),
    users: UsersService = Depends(get_users_service),
):
    return to_payload(await users.find_by_id(user_id))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    _admin: User = Depends(require_admin),
    users: UsersService = Depends(get_users_service),
):
    await users.remove(user_id)
    return {"message": "User deleted successfully"}
