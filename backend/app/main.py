import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api import ai as ai_api
from .api import auth as auth_api
from .api import jobs as jobs_api
from .api import messages as messages_api
from .api import notifications as notifications_api
from .api import payments as payments_api
from .api import posts as posts_api
from .api import users as users_api
from .config import get_settings
from .database import init_db
from .utils.error_handlers import AppError, create_error_response, get_error_message

logger = logging.getLogger(__name__)

app = FastAPI(title="ChainHire")

app.include_router(auth_api.router)
app.include_router(users_api.router)
app.include_router(jobs_api.router)
app.include_router(posts_api.router)
app.include_router(ai_api.router)
app.include_router(payments_api.router)
app.include_router(messages_api.router)
app.include_router(notifications_api.router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.exception("%s %s failed: %s", request.method, request.url.path, exc)
    return create_error_response(exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPException with user-friendly messages."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies/params are a 400 like every other validation failure."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg") or get_error_message("validation_error")
    return create_error_response(400, f"{field}: {msg}" if field else msg)


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    """Handle general database errors."""
    logger.exception("Database SQLAlchemyError: %s", exc)
    return create_error_response(500, get_error_message("server_error"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors globally."""
    logger.exception("Unhandled exception: %s", exc)
    return create_error_response(500, get_error_message("server_error"))


@app.get("/api/health")
def health_check():
    return {"status": "OK", "message": "ChainHire API is running"}


_default_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=[*_default_origins, *get_settings().frontend_origins],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    settings = get_settings()
    logger.info(
        "ChainHire started ai_provider=%s ai_enabled=%s",
        settings.ai_provider,
        settings.ai_enabled,
    )
