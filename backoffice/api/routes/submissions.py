from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from backoffice.api.deps import get_current_user, get_submissions_service, require_admin
from backoffice.domain.entities import User
from backoffice.domain.schemas import (
    MessageResponse,
    SubmissionCreatedResponse,
    SubmissionResponse,
    SubmissionUpdate,
)
from backoffice.services.submissions import SubmissionsService

router = APIRouter()

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


async def read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size too large. Maximum size is 10MB.")
    return data


@router.get("", response_model=list[SubmissionResponse])
async def list_submissions(
    store_id: Optional[str] = None,
    planogram_id: Optional[str] = None,
    uploaded_by_id: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = Query(default="ASC", pattern=r'^(ASC|DESC|asc|desc)$'),
    _admin: User = Depends(require_admin),
    submissions: SubmissionsService = Depends(get_submissions_service),
):
    """List submissions with filter, search and sort options (admin only)."""
    return await submissions.find_all(
        filter={"store_id": store_id, "planogram_id": planogram_id, "uploaded_by_id": uploaded_by_id},
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    _admin: User = Depends(require_admin),
    submissions: SubmissionsService = Depends(get_submissions_service),
):
    return await submissions.find_by_id(submission_id)


@router.post("", response_model=SubmissionCreatedResponse, status_code=201)
async def create_submission(
    store_id: str = Form(...),
    planogram_id: str = Form(...),
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    submissions: SubmissionsService = Depends(get_submissions_service),
):
    """Create a submission holding one uploaded photo."""
    data = await read_upload(file)
    return await submissions.create_with_file_upload(
        store_id=store_id,
        planogram_id=planogram_id,
        data=data,
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        uploaded_by_id=user.id,
    )


@router.post("/{submission_id}/uploads", response_model=SubmissionResponse)
async def add_upload(
    submission_id: str,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    submissions: SubmissionsService = Depends(get_submissions_service),
):
    """Upload another photo into an existing submission."""
    await submissions.find_by_id(submission_id)
    data = await read_upload(file)
    upload = await submissions.create_upload(
        data,
        file.filename,
        file.content_type or "application/octet-stream",
        user.id,
        submission_id=submission_id,
    )
    await submissions.add_upload_to_submission(submission_id, upload.id)
    return await submissions.find_by_id(submission_id)


@router.put("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: str,
    data: SubmissionUpdate,
    _admin: User = Depends(require_admin),
    submissions: SubmissionsService = Depends(get_submissions_service),
):
    return await submissions.update(submission_id, data.model_dump(exclude_unset=True))


@router.delete("/{submission_id}", response_model=MessageResponse)
async def delete_submission(
    submission_id: str,
    _admin: User = Depends(require_admin),
    submissions: SubmissionsService = Depends(get_submissions_service),
):
    await submissions.remove(submission_id)
    return {"message": "Submission deleted successfully"}
