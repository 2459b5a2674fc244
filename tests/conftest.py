import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


# Ensure `import backend.app...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


class FakeAI:
    """
    Scripted stand-in for AIClient: `complete()` pops queued replies in order.

    A queued exception instance is raised instead of returned; an empty queue
    behaves like an unconfigured provider.
    """

    def __init__(self):
        self.enabled = True
        self.model = "fake-model"
        self.replies: list = []
        self.prompts: list[str] = []

    def queue(self, *replies) -> "FakeAI":
        self.replies.extend(replies)
        return self

    async def complete(self, prompt: str) -> str:
        from backend.app.services.ai_client import AIClientError

        self.prompts.append(prompt)
        if not self.replies:
            raise AIClientError("AI provider is not configured")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite3"


@pytest.fixture()
def fake_ai() -> FakeAI:
    return FakeAI()


@pytest.fixture()
def app(test_db_path: Path, fake_ai: FakeAI) -> FastAPI:
    """The real ChainHire app wired to a temporary SQLite DB and a scripted AI client."""
    os.environ["DISABLE_DOTENV"] = "1"
    os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{test_db_path}"
    # Ensure tests never call external AI providers even if developer machine has keys set.
    os.environ["AI_API_KEY"] = ""
    os.environ["OPENROUTER_API_KEY"] = ""
    os.environ["GEMINI_API_KEY"] = ""
    os.environ["ADMIN_WALLET_ETH"] = "0x" + "a" * 40
    os.environ["ADMIN_WALLET_SOL"] = "So11111111111111111111111111111111111111112"

    from backend.app.config import get_settings

    get_settings.cache_clear()

    from backend.app import database as db

    engine = create_engine(
        os.environ["DATABASE_URL"],
        connect_args={"check_same_thread": False},
    )
    db.install_sqlite_pragmas(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Patch the shared database module so router dependencies use the test DB.
    db.engine = engine
    db.SessionLocal = TestingSessionLocal

    db.import_models()
    db.Base.metadata.drop_all(bind=engine)
    db.Base.metadata.create_all(bind=engine)

    from backend.app.main import app as fastapi_app
    from backend.app.utils.dependencies import get_ai_client

    fastapi_app.dependency_overrides[get_ai_client] = lambda: fake_ai
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    engine.dispose()
    get_settings.cache_clear()


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    from backend.app.database import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
