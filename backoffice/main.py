import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from backoffice.api import api_router
from backoffice.core.config import get_settings
from backoffice.core.logging import setup_logging
from backoffice.database.connection import PoolExhaustedError, get_db
from backoffice.domain.entities import InvalidQueryError
from backoffice.services.errors import (
    AuthenticationError,
    BusinessRuleError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    db = get_db()
    db.start_keepalive()
    yield
    # Shutdown
    await db.close()


class DynamicCORSMiddleware(BaseHTTPMiddleware):
    """CORS middleware allowing the configured frontend origin in production."""

    def __init__(self, app, frontend_url: str, environment: str):
        super().__init__(app)
        self.environment = environment
        self.allowed = re.compile("^" + re.escape(frontend_url.rstrip("/")) + "$")

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")

        # Handle preflight requests
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        if origin:
            if self.environment != "production" or self.allowed.match(origin):
                response.headers["Access-Control-Allow-Origin"] = origin
                response.headers["Access-Control-Allow-Credentials"] = "true"
            else:
                logger.warning(f"CORS rejected - Origin '{origin}' is not the frontend")

        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS, PATCH"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-Requested-With"

        return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(BusinessRuleError)
    async def business_rule(request: Request, exc: BusinessRuleError):
        return JSONResponse(status_code=429, content={"detail": str(exc)})

    @app.exception_handler(AuthenticationError)
    async def authentication(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content={"detail": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ConflictError)
    async def conflict(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InvalidQueryError)
    @app.exception_handler(InvalidRequestError)
    async def bad_request(request: Request, exc: Exception):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(PoolExhaustedError)
    async def pool_exhausted(request: Request, exc: PoolExhaustedError):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Server busy, try again later"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Planogram back office API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        DynamicCORSMiddleware,
        frontend_url=settings.frontend_url,
        environment=settings.environment,
    )
    register_exception_handlers(app)

    # Include all routes
    app.include_router(api_router)

    if settings.storage_type == "local":
        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        app.mount("/public", StaticFiles(directory=upload_dir), name="public")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
