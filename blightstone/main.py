import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from blightstone.auth.router import router as auth_router
from blightstone.auth.sessions import close_session_backend, get_session_backend
from blightstone.auth.settings import auth_settings
from blightstone.exceptions import BlightstoneError
from blightstone.invites.router import router as invites_router
from blightstone.projects.router import router as projects_router
from blightstone.settings import app_settings
from blightstone.tasks.router import router as tasks_router
from blightstone.users.router import router as users_router

logging.getLogger("blightstone").setLevel(app_settings.log_level.upper())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail at startup on an unknown SESSION_BACKEND
    get_session_backend()
    yield
    await close_session_backend()


app = FastAPI(title="Blightstone", lifespan=lifespan)


def _error_response(status_code: int, message: str, detail: str | None = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if detail and app_settings.is_development:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(BlightstoneError)
async def blightstone_exception_handler(request: Request, exc: BlightstoneError):
    """Render the error taxonomy as {"success": false, "error": ...}."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(
            str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
        )
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return _error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in app_settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# The signed cookie only carries the server-side session id
app.add_middleware(
    SessionMiddleware,
    secret_key=auth_settings.SESSION_SECRET_KEY,
    session_cookie=auth_settings.SESSION_COOKIE_NAME,
    max_age=auth_settings.SESSION_MAX_AGE_SECONDS,
    same_site=auth_settings.COOKIE_SAMESITE,
    https_only=auth_settings.cookie_secure,
)

app.include_router(auth_router)
app.include_router(invites_router)
app.include_router(users_router)
app.include_router(projects_router)
app.include_router(tasks_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
