"""Repo-root Uvicorn entrypoint.

Allows running the backend from the repo root:

    uvicorn app.main:app --reload

This re-exports the FastAPI app defined in `backend/careers/main.py`.
"""

from backend.careers.main import app  # re-export
