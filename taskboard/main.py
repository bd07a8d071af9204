import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Mount

from taskboard.config import get_settings
from taskboard.exceptions import ConfigurationError, NotFoundError, StorageError, ValidationError
from taskboard.mcp_server import mcp
from taskboard.models.common import StatusResponse, StoreStatus
from taskboard.routers.tasks import router as tasks_router
from taskboard.services.tasks import close_task_store, get_task_store

logger = logging.getLogger(__name__)


# --- Access boundary middleware ---

class AllowedHostsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        client_host = request.client.host if request.client else None
        if client_host not in get_settings().allowed_hosts:
            logger.warning("Rejected request from %s", client_host)
            return JSONResponse(status_code=403, content={"error": "Access denied."})
        return await call_next(request)


# --- FastAPI app ---

api = FastAPI(title="Taskboard", version="0.1.0")
api.include_router(tasks_router)


@api.get("/api/status")
def api_status() -> StatusResponse:
    settings = get_settings()
    try:
        store = get_task_store()
    except ConfigurationError:
        return StatusResponse(store=StoreStatus(configured=False, reachable=False))
    return StatusResponse(
        store=StoreStatus(configured=True, reachable=store.ping(), database=settings.mongodb_database),
    )


# --- Exception handlers ---

def _describe_request_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return "Invalid JSON payload."
    if not errors:
        return "Invalid request."
    err = errors[0]
    loc = [str(part) for part in err.get("loc", ()) if part != "body"]
    if not loc:
        return "Request body must be a JSON object."
    if loc[-1] == "title":
        return "A task title is required."
    if loc[-1] == "id":
        return "A valid task id is required."
    return f"{'.'.join(loc)}: {err.get('msg', 'invalid value')}"


@api.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _describe_request_error(exc)})


@api.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@api.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@api.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=500, content={"error": str(exc)})


@api.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


# --- Starlette root app ---

mcp_app = mcp.http_app(path="/", stateless_http=True)


@asynccontextmanager
async def lifespan(app: Starlette):
    # Missing MongoDB settings abort startup here rather than failing per request.
    get_task_store()
    try:
        async with mcp_app.lifespan(app):
            yield
    finally:
        close_task_store()


app = Starlette(
    middleware=[Middleware(AllowedHostsMiddleware)],
    routes=[
        Mount("/mcp", app=mcp_app),
        Mount("/", app=api),
    ],
    lifespan=lifespan,
)


def run():
    settings = get_settings()
    uvicorn.run(
        "taskboard.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
