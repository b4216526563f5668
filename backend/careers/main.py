import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from . import config
from .api import admin as admin_api
from .api import candidate as candidate_api
from .api import profile as profile_api
from .api import public as public_api
from .database import database_ready, init_db
from .services.file_store import UPLOAD_URL_PREFIX
from .utils.error_handlers import AppError, app_error_handler, get_error_message

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPException with the same `msg` envelope as domain errors."""
    return JSONResponse(status_code=exc.status_code, content={"msg": exc.detail})


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or None,
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"msg": get_error_message("validation_error"), "errors": errors},
    )


async def sqlalchemy_operational_error_handler(request: Request, exc: OperationalError):
    """Handle database operational errors."""
    logger.exception("Database OperationalError: %s", exc)
    return JSONResponse(
        status_code=503,
        content={"msg": get_error_message("database_error"), "error": "DATABASE_UNAVAILABLE"},
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database SQLAlchemyError: %s", exc)
    return JSONResponse(status_code=500, content={"msg": get_error_message("server_error")})


async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors globally."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"msg": get_error_message("server_error")})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(OperationalError, sqlalchemy_operational_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)


def include_routers(app: FastAPI) -> None:
    app.include_router(candidate_api.router)
    app.include_router(profile_api.router)
    app.include_router(public_api.router)
    app.include_router(admin_api.router)


def allowed_origins() -> list[str]:
    extra = [origin.strip().rstrip("/") for origin in config.FRONTEND_ORIGINS.split(",") if origin.strip()]
    origins = [config.get_frontend_url(), config.PUBLIC_SITE_URL.rstrip("/"), *extra]
    # Preserve order, drop duplicates.
    return list(dict.fromkeys(origins))


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
        logger.info("Database initialized")
    except SQLAlchemyError as e:
        # Requests still get a 503 from the readiness check until the database is reachable.
        logger.error("Database initialization failed: %s", e)
    yield


app = FastAPI(title=f"{config.SCHOOL_NAME} Careers", lifespan=lifespan)

include_routers(app)
register_exception_handlers(app)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    ready = database_ready()
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "degraded",
            "database": "connected" if ready else "unavailable",
            "service": "careers",
        },
    )


os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR), name="uploads")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
