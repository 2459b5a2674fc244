from datetime import timedelta

from jose import JWTError, jwt

from ..config import Settings, get_settings
from .timeutils import utcnow

ALGORITHM = "HS256"


def create_access_token(data: dict, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    to_encode = data.copy()
    expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, settings: Settings | None = None) -> dict:
    """Return the token claims. Raises ValueError on a bad signature, expiry or missing subject."""
    settings = settings or get_settings()
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid token") from e
    if not claims.get("sub"):
        raise ValueError("Token has no subject")
    return claims
