import os
from pathlib import Path
from dotenv import load_dotenv

# Override=True so changes in backend/.env take effect on process reload.
#
# Tests point DATABASE_URL at a temporary SQLite file; set DISABLE_DOTENV=1 so
# backend/.env can't override it.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)


def _env_bool(name: str, default: str = "1") -> bool:
    v = (os.getenv(name, default) or default).strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


_raw_database_url = (os.getenv("DATABASE_URL") or "").strip()
# Default to a local SQLite DB for dev so the backend can start out-of-the-box.
_default_sqlite_path = (Path(__file__).resolve().parent.parent / "dev.db").as_posix()
DATABASE_URL = _raw_database_url or f"sqlite:///{_default_sqlite_path}"

ENVIRONMENT = (os.getenv("ENVIRONMENT") or "development").strip().lower()

# Auth / JWT
# NOTE: keep a default for local dev so the server can boot even if SECRET_KEY isn't set.
SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret_change_me")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "authToken")
# SameSite=None cookies are rejected by browsers unless Secure is set.
SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", "1")

VERIFICATION_TOKEN_TTL_MINUTES = 60 * 24  # 24 hours
LOGIN_TOKEN_TTL_MINUTES = 15
SESSION_TTL_MINUTES = 60 * 24 * 7  # 7 days
SESSION_COOKIE_TTL_DAYS = 30
ADMIN_TOKEN_TTL_MINUTES = 60 * 2

# Frontend / notifications
SCHOOL_NAME = os.getenv("SCHOOL_NAME", "The First Steps School")
PUBLIC_SITE_URL = os.getenv("PUBLIC_SITE_URL", "https://tfs.school")
FRONTEND_URL = os.getenv("FRONTEND_URL", "")
FRONTEND_ORIGINS = os.getenv("FRONTEND_ORIGINS", "")
# Operations inbox for "new candidate" notifications. Empty disables them.
ADMIN_EMAIL = (os.getenv("ADMIN_EMAIL") or "").strip()

# SMTP
SMTP_HOST = (os.getenv("SMTP_HOST") or "").strip()
SMTP_PORT = int((os.getenv("SMTP_PORT") or "587").strip())
SMTP_USER = (os.getenv("SMTP_USER") or "").strip()
SMTP_PASS = (os.getenv("SMTP_PASS") or "").strip()
SMTP_FROM = (os.getenv("SMTP_FROM") or SMTP_USER).strip()
SMTP_TLS = _env_bool("SMTP_TLS", "1")
EMAIL_ENABLED = _env_bool("EMAIL_ENABLED", "1")

# File uploads
# Absolute path; override with UPLOAD_DIR in env (useful for tests).
UPLOAD_DIR = os.getenv("UPLOAD_DIR") or (Path(__file__).resolve().parent.parent / "uploads").as_posix()
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)) or str(10 * 1024 * 1024))


def get_frontend_url() -> str:
    """
    Base URL used inside verification/login links.

    Production never links to a preview deployment: a missing or *.vercel.app
    FRONTEND_URL falls back to the public site.
    """
    url = (FRONTEND_URL or "").strip()
    if ENVIRONMENT == "production" and (not url or "vercel.app" in url):
        return PUBLIC_SITE_URL.rstrip("/")
    return (url or "http://localhost:3000").rstrip("/")
