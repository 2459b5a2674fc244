"""
Centralized error handling and user-friendly error messages.
"""
import logging

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Validation error."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class ConflictError(AppError):
    """Duplicate record (already applied, payment already recorded, ...)."""
    def __init__(self, message: str = "Record already exists", details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found", details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class ForbiddenError(AppError):
    """Forbidden access error."""
    def __init__(self, message: str = "Access forbidden", details: dict | None = None):
        super().__init__(message, status_code=403, details=details)


class AIServiceError(AppError):
    """AI provider failed; the cause is logged, never sent to the client."""
    def __init__(self, message: str = "AI service error", details: dict | None = None):
        super().__init__(message, status_code=500, details=details)


class FileUploadError(AppError):
    """File upload error."""
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message, status_code=status_code, details=details)


# User-friendly error messages
ERROR_MESSAGES = {
    # Authentication
    "invalid_credentials": "Invalid email or password",
    "email_exists": "User already exists with this email",
    "weak_password": "Password must be at least 6 characters long.",
    "session_expired": "Your session has expired. Please login again.",
    "missing_token": "No token, authorization denied",
    "invalid_token": "Token is not valid",

    # File uploads
    "file_too_large": "File is too large. Maximum size is 10MB.",
    "invalid_file_type": "Invalid file type. Only PDF, DOC, DOCX and TXT files are allowed.",
    "no_file": "No file uploaded",
    "resume_text_too_short": "Could not extract enough text from the resume. Please upload a text-based file.",
    "resume_parse_failed": "Failed to parse resume data",

    # AI services
    "ai_error": "AI service error",

    # Users
    "user_not_found": "User not found",

    # Jobs
    "job_not_found": "Job not found",
    "job_not_owned": "Job not found or unauthorized",
    "already_applied": "Already applied to this job",
    "no_resume": "Please upload a resume before applying",

    # Posts
    "post_not_found": "Post not found",
    "post_not_owned": "Post not found or unauthorized",

    # Messages
    "message_not_found": "Message not found",
    "self_message": "Cannot send message to yourself",

    # Notifications
    "notification_not_found": "Notification not found",

    # Payments
    "payment_exists": "Payment already recorded",

    # General
    "unauthorized": "Please login to access this feature.",
    "forbidden": "You don't have permission to access this resource.",
    "not_found": "The requested resource was not found.",
    "server_error": "Server error",
    "database_error": "Database connection issue. Please try again later.",
    "validation_error": "Please check your input and try again.",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


def handle_database_error(error: Exception, operation: str = "") -> HTTPException:
    """Map a failed write to an HTTPException; the raw driver message only goes to the log."""
    logger.error("Database error during %s: %s", operation, error)

    if isinstance(error, IntegrityError):
        error_str = str(getattr(error, "orig", error)).lower()
        if "unique" in error_str or "duplicate" in error_str:
            return HTTPException(
                status_code=400,
                detail="This record already exists. Please check your input."
            )
        if "foreign key" in error_str:
            return HTTPException(
                status_code=400,
                detail="Invalid reference. The related record may have been deleted."
            )

    return HTTPException(
        status_code=500,
        detail=get_error_message("server_error")
    )


def create_error_response(
    status_code: int,
    message: str,
    details: dict | None = None
) -> JSONResponse:
    """Create a standardized error response."""
    content = {
        "success": False,
        "error": message,
    }

    if details:
        content["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content
    )
