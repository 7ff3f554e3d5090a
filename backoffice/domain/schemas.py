from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from backoffice.domain.entities import UserRole


# ============================================
# Nested summaries
# ============================================

class UserSummary(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
    role: Optional[UserRole] = None


class StoreSummary(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    image_src: Optional[str] = None


class PlanogramSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image_src: Optional[str] = None


# ============================================
# User Schemas
# ============================================

class UserResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    google_id: Optional[str] = None
    profile_picture: Optional[str] = None
    is_confirmed: bool = False
    lang: Optional[str] = None
    theme: Optional[str] = None
    role: UserRole
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    lang: Optional[str] = Field(default="en", pattern=r'^(en|fr)$')


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    lang: Optional[str] = Field(default=None, pattern=r'^(en|fr)$')
    theme: Optional[str] = Field(default=None, pattern=r'^(light|dark|system)$')


# ============================================
# Auth Schemas
# ============================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    lang: Optional[str] = Field(default="en", pattern=r'^(en|fr)$')


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8)
    old_password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)


class GoogleLoginRequest(BaseModel):
    """ID token returned to the client by Google sign-in."""
    id_token: str = Field(..., min_length=1)


# ============================================
# Store Schemas
# ============================================

class StoreCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    image_src: Optional[str] = None


class StoreUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    image_src: Optional[str] = None


class StoreResponse(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    image_src: Optional[str] = None
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None


# ============================================
# Planogram Schemas
# ============================================

class PlanogramCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    store_id: str
    image_src: Optional[str] = None


class PlanogramUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    store_id: Optional[str] = None
    image_src: Optional[str] = None


class PlanogramResponse(BaseModel):
    id: str
    name: str
    description: str
    image_src: Optional[str] = None
    store_id: str
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    store: Optional[StoreSummary] = None
    created_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None


# ============================================
# Submission Schemas
# ============================================

class UploadResponse(BaseModel):
    id: str
    filename: str
    size: str
    content_type: str
    url: Optional[str] = None  # Signed URL for reading the file
    uploaded_at: Optional[datetime] = None
    uploaded_by_id: str
    store_id: str
    planogram_id: str
    submission_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubmissionUpdate(BaseModel):
    store_id: Optional[str] = None
    planogram_id: Optional[str] = None
    upload_ids: Optional[List[str]] = None


class AddUploadRequest(BaseModel):
    upload_id: str


class SubmissionResponse(BaseModel):
    id: str
    uploaded_at: Optional[datetime] = None
    uploaded_by_id: str
    store_id: str
    planogram_id: str
    upload_ids: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    uploaded_by: Optional[UserSummary] = None
    store: Optional[StoreSummary] = None
    planogram: Optional[PlanogramSummary] = None
    uploads: List[UploadResponse] = []


class SubmissionCreatedResponse(BaseModel):
    submission: SubmissionResponse
    upload: UploadResponse


# ============================================
# Storage Schemas
# ============================================

class StoredFileResponse(BaseModel):
    path: str
    filename: str
    content_type: str
    size: int
    url: str


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int


class MessageResponse(BaseModel):
    message: str
