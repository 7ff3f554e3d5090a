from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from backoffice.api.deps import get_storage, require_admin
from backoffice.domain.entities import User
from backoffice.domain.schemas import SignedUrlResponse, StoredFileResponse
from backoffice.services.storage import StorageService

router = APIRouter()

IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
MAX_IMAGE_BYTES = 10 * 1024 * 1024


@router.post("/upload", response_model=StoredFileResponse, status_code=201)
async def upload_image(
    image: UploadFile = File(...),
    folder: str = Form("uploads"),
    _admin: User = Depends(require_admin),
    storage: StorageService = Depends(get_storage),
):
    """Upload an image, e.g. a store or planogram picture (admin only)."""
    if image.content_type not in IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed."
        )
    data = await image.read()
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="File size too large. Maximum size is 10MB.")

    stored = storage.upload_file(data, image.filename, image.content_type, folder=folder)
    return StoredFileResponse(
        path=stored.path,
        filename=stored.filename,
        content_type=stored.content_type,
        size=stored.size,
        url=stored.url,
    )


@router.get("/signed-url", response_model=SignedUrlResponse)
async def signed_url(
    filepath: str = Query(..., min_length=1),
    expires_in: Optional[int] = Query(default=None, gt=0),
    _admin: User = Depends(require_admin),
    storage: StorageService = Depends(get_storage),
):
    """Generate a signed URL for an existing file (admin only)."""
    ttl = expires_in or storage.signed_url_ttl
    return {"url": storage.generate_signed_url(filepath, ttl), "expires_in": ttl}
