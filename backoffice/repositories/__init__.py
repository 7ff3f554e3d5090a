from .planogram import PlanogramRepository
from .store import StoreRepository
from .submission import SubmissionRepository, UploadRepository
from .user import UserRepository

__all__ = [
    "PlanogramRepository",
    "StoreRepository",
    "SubmissionRepository",
    "UploadRepository",
    "UserRepository",
]
