import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backoffice.api.deps import get_database
from backoffice.database.connection import Database

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(db: Database = Depends(get_database)):
    """Report whether the database answers a ping."""
    try:
        await db.ping()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}
