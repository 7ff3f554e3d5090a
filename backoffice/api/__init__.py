from fastapi import APIRouter

from .routes import auth, health, planograms, storage, stores, submissions, users

api_router = APIRouter()

# Health check
api_router.include_router(health.router, tags=["health"])

# Accounts
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])

# Catalog
api_router.include_router(stores.router, prefix="/stores", tags=["stores"])
api_router.include_router(planograms.router, prefix="/planograms", tags=["planograms"])

# Field photos
api_router.include_router(submissions.router, prefix="/submissions", tags=["submissions"])
api_router.include_router(storage.router, prefix="/storage", tags=["storage"])
