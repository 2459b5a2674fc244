"""Repo-root entrypoint for the ChainHire API.

    uvicorn app.main:app --reload

Re-exports the FastAPI app from `backend/app/main.py`.
"""

from backend.app.main import app  # noqa: F401
