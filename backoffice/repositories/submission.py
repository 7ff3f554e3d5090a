from backoffice.database.connection import Database
from backoffice.database.record_store import RecordStore
from backoffice.domain.entities import Submission, Upload


class SubmissionRepository(RecordStore[Submission]):

    def __init__(self, db: Database):
        super().__init__(db, Submission)


class UploadRepository(RecordStore[Upload]):

    def __init__(self, db: Database):
        super().__init__(db, Upload)

    async def find_by_submission(self, submission_id: str) -> list[Upload]:
        """Get the uploads whose back-reference points at a submission."""
        return await self.find_all_by_filter({"submission_id": submission_id})
