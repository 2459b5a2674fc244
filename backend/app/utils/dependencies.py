import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_db
from ..repositories.notifications import NotificationRepository
from ..services.ai_client import AIClient
from ..services.notifications import NotificationFanout
from .error_handlers import get_error_message
from .jwt import decode_access_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is a 401 with our message instead of FastAPI's 403.
_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Resolve the bearer token to its claims; `int(user["sub"])` is the caller's id."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail=get_error_message("missing_token"))
    try:
        claims = decode_access_token(credentials.credentials, settings)
        int(claims["sub"])
    except (ValueError, TypeError) as e:
        logger.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail=get_error_message("invalid_token"))
    return claims


def get_ai_client(settings: Settings = Depends(get_settings)) -> AIClient:
    return AIClient(settings)


def get_notifier(db: Session = Depends(get_db)) -> NotificationFanout:
    # Same request-scoped session as the route, so notifications commit with the triggering write.
    return NotificationFanout(NotificationRepository(db))
