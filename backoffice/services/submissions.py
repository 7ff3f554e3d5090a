"""
Submissions and their uploads.

A submission's ``upload_ids`` list and each upload's ``submission_id`` are
written as separate statements without a transaction. Concurrent attaches
to the same submission can therefore lose an id from the list while the
upload still points back at the submission.
"""

import logging
import uuid
from typing import Any, Mapping, Optional

from backoffice.core.time_utils import utcnow
from backoffice.database.connection import ExecuteResult
from backoffice.domain.entities import Submission, Upload
from backoffice.repositories import (
    PlanogramRepository,
    StoreRepository,
    SubmissionRepository,
    UploadRepository,
    UserRepository,
)
from backoffice.services.errors import InvalidRequestError, NotFoundError
from backoffice.services.relations import (
    PLANOGRAM_SUMMARY_FIELDS,
    STORE_SUMMARY_FIELDS,
    UPLOAD_FIELDS,
    USER_SUMMARY_FIELDS,
    Relation,
    RelationPopulator,
    to_payload,
)
from backoffice.services.storage import StorageService

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("id",)
UPLOAD_FOLDER = "submissions"


class SubmissionsService:

    def __init__(
        self,
        submissions: SubmissionRepository,
        uploads: UploadRepository,
        users: UserRepository,
        stores: StoreRepository,
        planograms: PlanogramRepository,
        storage: StorageService,
    ):
        self.submissions = submissions
        self.uploads = uploads
        self.storage = storage
        self.relations = RelationPopulator([
            Relation("uploaded_by", "uploaded_by_id", users, USER_SUMMARY_FIELDS),
            Relation("store", "store_id", stores, STORE_SUMMARY_FIELDS),
            Relation("planogram", "planogram_id", planograms, PLANOGRAM_SUMMARY_FIELDS),
            Relation("uploads", "upload_ids", uploads, UPLOAD_FIELDS, many=True, decorate=self._with_url),
        ])

    def _with_url(self, upload: dict) -> dict:
        upload["url"] = self.storage.generate_signed_url(upload.get("filename") or "")
        return upload

    def upload_payload(self, upload: Upload) -> dict:
        return self._with_url(to_payload(upload))

    async def find_all(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "ASC",
    ) -> list[dict]:
        submissions = await self.submissions.find_all_with_search_and_sort(
            search=search,
            search_columns=SEARCH_COLUMNS,
            sort_by=sort_by,
            sort_order=sort_order,
            filter=filter,
        )
        return await self.relations.populate(submissions)

    async def find_by_id(self, submission_id: str) -> dict:
        submission = await self.submissions.find_by_id(submission_id)
        if not submission:
            raise NotFoundError(f"Submission {submission_id} not found")
        return await self.relations.populate_one(submission)

    async def create(self, data: Mapping[str, Any]) -> Submission:
        now = utcnow()
        row = {
            "id": str(uuid.uuid4()),
            "uploaded_at": now,
            **data,
            "upload_ids": list(data.get("upload_ids") or []),
            "created_at": now,
            "updated_at": now,
        }
        return await self.submissions.create(row)

    async def create_upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        uploaded_by_id: str,
        submission_id: Optional[str] = None,
        store_id: Optional[str] = None,
        planogram_id: Optional[str] = None,
    ) -> Upload:
        """Store a file and record it, taking store/planogram from the submission when missing."""
        if submission_id and (not store_id or not planogram_id):
            submission = await self.submissions.find_by_id(submission_id)
            if submission:
                store_id = store_id or submission.store_id
                planogram_id = planogram_id or submission.planogram_id
        if not store_id or not planogram_id:
            raise InvalidRequestError("Store ID and Planogram ID are required (provide both or a valid submission ID)")

        stored = self.storage.upload_file(data, filename, content_type, folder=UPLOAD_FOLDER)
        now = utcnow()
        upload = await self.uploads.create({
            "id": str(uuid.uuid4()),
            "filename": stored.path,
            "size": str(stored.size),
            "content_type": content_type,
            "uploaded_at": now,
            "uploaded_by_id": uploaded_by_id,
            "store_id": store_id,
            "planogram_id": planogram_id,
            "submission_id": submission_id,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Created upload {upload.id} ({stored.size} bytes)")
        return upload

    async def create_with_file_upload(
        self,
        store_id: str,
        planogram_id: str,
        data: bytes,
        filename: str,
        content_type: str,
        uploaded_by_id: str,
    ) -> dict:
        """Create a submission holding a single freshly uploaded file."""
        submission = await self.create({
            "uploaded_by_id": uploaded_by_id,
            "store_id": store_id,
            "planogram_id": planogram_id,
        })
        upload = await self.create_upload(
            data,
            filename,
            content_type,
            uploaded_by_id,
            submission_id=submission.id,
            store_id=store_id,
            planogram_id=planogram_id,
        )
        submission = await self.submissions.update(submission.id, {"upload_ids": [upload.id]})
        return {"submission": to_payload(submission), "upload": self.upload_payload(upload)}

    async def add_upload_to_submission(self, submission_id: str, upload_id: Optional[str]) -> Submission:
        """Attach an existing upload to a submission.

        The upload's back-reference (and its store/planogram copies) and the
        submission's id list are two separate writes.
        """
        if not upload_id:
            raise InvalidRequestError("Upload ID is required")
        submission = await self.submissions.find_by_id(submission_id)
        if not submission:
            raise NotFoundError(f"Submission {submission_id} not found")
        upload = await self.uploads.find_by_id(upload_id)
        if not upload:
            raise NotFoundError(f"Upload {upload_id} not found")

        await self.uploads.update(upload_id, {
            "submission_id": submission_id,
            "store_id": submission.store_id,
            "planogram_id": submission.planogram_id,
        })

        upload_ids = list(submission.upload_ids)
        if upload_id not in upload_ids:
            upload_ids.append(upload_id)
        return await self.submissions.update(submission_id, {"upload_ids": upload_ids})

    async def update(self, submission_id: str, data: Mapping[str, Any]) -> dict:
        submission = await self.submissions.update(submission_id, {**data, "updated_at": utcnow()})
        if not submission:
            raise NotFoundError(f"Submission {submission_id} not found")
        return await self.relations.populate_one(submission)

    async def remove(self, submission_id: str) -> ExecuteResult:
        """Delete a submission; its uploads cascade."""
        return await self.submissions.delete(submission_id)
