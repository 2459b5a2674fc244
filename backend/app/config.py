import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


_TRUTHY = {"1", "true", "True", "yes", "YES"}


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env_str(name)
    return raw in _TRUTHY if raw else default


@dataclass(frozen=True)
class Settings:
    database_url: str
    secret_key: str = "dev_secret_change_me"
    access_token_expire_minutes: int = 60 * 24 * 7

    # -------------------- AI provider --------------------
    # "openrouter" speaks the OpenAI-style chat completions API; "gemini" uses generateContent.
    ai_provider: str = "openrouter"
    ai_api_key: str = ""
    ai_api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    ai_model: str = "deepseek/deepseek-r1"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_api_version: str = "v1"
    ai_timeout_s: float = 60.0
    ai_max_retries: int = 0
    ai_log_payloads: bool = False

    # -------------------- Payments --------------------
    platform_fee_eth: float = 0.00001
    platform_fee_sol: float = 0.0001
    admin_wallet_eth: str = ""
    admin_wallet_sol: str = ""

    frontend_origins: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ai_enabled(self) -> bool:
        if self.ai_provider == "gemini":
            return bool(self.gemini_api_key)
        return bool(self.ai_api_key)


def load_settings() -> Settings:
    """Build a Settings snapshot from the process environment (and backend/.env)."""
    # Set DISABLE_DOTENV=1 in tests so a developer .env never overrides the test DATABASE_URL.
    if os.getenv("DISABLE_DOTENV") != "1":
        load_dotenv(override=True)

    # Default to a local SQLite DB so the backend can start out-of-the-box.
    default_sqlite_path = (Path(__file__).resolve().parent.parent / "dev.db").as_posix()
    database_url = _env_str("DATABASE_URL") or f"sqlite:///{default_sqlite_path}"

    origins = tuple(o.strip() for o in _env_str("FRONTEND_ORIGINS").split(",") if o.strip())

    return Settings(
        database_url=database_url,
        secret_key=_env_str("SECRET_KEY", "dev_secret_change_me"),
        access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7),
        ai_provider=_env_str("AI_PROVIDER", "openrouter").lower(),
        # OPENROUTER_* kept as aliases for older .env files.
        ai_api_key=_env_str("AI_API_KEY") or _env_str("OPENROUTER_API_KEY"),
        ai_api_url=_env_str("AI_API_URL")
        or _env_str("OPENROUTER_API_URL", "https://openrouter.ai/api/v1/chat/completions"),
        ai_model=_env_str("AI_MODEL", "deepseek/deepseek-r1"),
        gemini_api_key=_env_str("GEMINI_API_KEY"),
        gemini_model=_env_str("GEMINI_MODEL", "gemini-2.0-flash"),
        gemini_base_url=_env_str("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com"),
        gemini_api_version=_env_str("GEMINI_API_VERSION", "v1"),
        ai_timeout_s=_env_float("AI_TIMEOUT_S", 60.0),
        ai_max_retries=_env_int("AI_MAX_RETRIES", 0),
        ai_log_payloads=_env_bool("AI_LOG_PAYLOADS"),
        platform_fee_eth=_env_float("PLATFORM_FEE_ETH", 0.00001),
        platform_fee_sol=_env_float("PLATFORM_FEE_SOL", 0.0001),
        admin_wallet_eth=_env_str("ADMIN_WALLET_ETH"),
        admin_wallet_sol=_env_str("ADMIN_WALLET_SOL"),
        frontend_origins=origins,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
