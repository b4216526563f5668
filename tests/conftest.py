import json
import os
import re
import sys
import tempfile
from datetime import date
from html import unescape
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


# Ensure `import backend.careers...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Config is read at import time, so the environment has to be in place before
# anything under backend.careers is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="careers-tests-"))
os.environ["DISABLE_DOTENV"] = "1"
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_TMP_DIR / 'test.sqlite3'}"
os.environ["UPLOAD_DIR"] = str(_TMP_DIR / "uploads")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["FRONTEND_URL"] = "http://localhost:3000"
os.environ["ADMIN_EMAIL"] = ""
# TestClient talks plain http, so the cookie must not be secure-only.
os.environ["SESSION_COOKIE_SECURE"] = "0"
# Never reach a real SMTP server; the outbox fixture captures messages instead.
os.environ["EMAIL_ENABLED"] = "0"


@pytest.fixture()
def app() -> FastAPI:
    """
    FastAPI app wired to a fresh temporary SQLite DB.

    Routers and exception handlers come from the real application module; only
    the database binding is swapped.
    """
    from backend.careers import database as db

    engine = create_engine(
        os.environ["DATABASE_URL"],
        connect_args={"check_same_thread": False},
    )
    db.install_sqlite_pragmas(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Patch the shared database module so router dependencies use the test DB.
    db.engine = engine
    db.SessionLocal = TestingSessionLocal

    from backend.careers import models  # noqa: F401

    db.Base.metadata.drop_all(bind=engine)
    db.Base.metadata.create_all(bind=engine)

    from backend.careers.main import include_routers, register_exception_handlers

    fastapi_app = FastAPI()
    include_routers(fastapi_app)
    register_exception_handlers(fastapi_app)
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    from backend.careers import database

    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def outbox(monkeypatch) -> list[dict]:
    """Captures every email the app tries to send."""
    from backend.careers.services import emailer

    sent: list[dict] = []

    def fake_send(to, subject, html, text=None):
        sent.append({"to": to, "subject": subject, "html": html})
        return {"success": True}

    monkeypatch.setattr(emailer, "send_email", fake_send)
    return sent


def link_params(html: str) -> dict:
    """token/email query parameters of the first link in an email body."""
    match = re.search(r'href="([^"]+)"', html)
    assert match, html
    query = parse_qs(urlparse(unescape(match.group(1))).query)
    return {key: values[0] for key, values in query.items()}


def last_link(outbox: list[dict], to: str) -> dict:
    for message in reversed(outbox):
        if message["to"] == to:
            return link_params(message["html"])
    raise AssertionError(f"no email sent to {to}")


def auth_headers(token: str) -> dict:
    return {"x-auth-token": token}


def register_and_verify(client: TestClient, outbox: list[dict], email: str) -> str:
    """Full registration; returns the session credential from verification."""
    r = client.post("/api/candidate/register", json={"email": email})
    assert r.status_code == 200, r.text
    params = last_link(outbox, email.lower())
    r = client.get("/api/candidate/verify-email", params=params)
    assert r.status_code == 200, r.text
    return r.json()["token"]


def adult_birthday(years: int = 25) -> str:
    today = date.today()
    return f"{today.year - years}-01-15"


def profile_payload(**overrides) -> dict:
    data = {
        "fullName": "Ayesha Khan",
        "dateOfBirth": adult_birthday(),
        "gender": "Female",
        "nationalId": "35202-1234567-1",
        "phone": "+92 300 1234567",
        "address": "12 Canal Road, Lahore",
        "education": [{"degree": "BEd", "institution": "University of Education", "yearOfCompletion": "2019"}],
        "workExperience": [],
        "skills": ["Classroom management", ""],
        "certifications": [],
    }
    data.update(overrides)
    return data


PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def resume_file(name: str = "resume.pdf") -> tuple:
    return (name, PDF_BYTES, "application/pdf")


def make_job(db, *, title: str = "Primary Teacher", status: str = "Open"):
    from backend.careers.models.job import Job

    job = Job(title=title, description="Teach grades 1-3", department="Academics", status=status)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def save_profile(client, token: str, *, with_resume: bool = True, **overrides):
    files = {"resume": resume_file()} if with_resume else None
    return client.post(
        "/api/profile",
        data={"profileData": json.dumps(profile_payload(**overrides))},
        files=files,
        headers=auth_headers(token),
    )
