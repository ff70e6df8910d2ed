import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.routing import APIRoute
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.db import get_db
from app.middleware.error_handler import (
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.utils.redis import get_redis_client
from app.utils.throttling import ThrottlingMiddleware

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    """Operation IDs like ``Dashboard_stats_summary_workspace`` for generated clients"""
    if route.tags:
        return f"{route.tags[0]}_{route.name}"
    return route.name


def custom_openapi():
    """
    OpenAPI schema with the bearer security scheme applied globally.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["servers"] = [
        {"url": f"{settings.SERVER_HOST}:{settings.SERVER_PORT}", "description": "Development server"},
    ]

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT Authorization header using the Bearer scheme.",
        }
    }
    openapi_schema["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return openapi_schema


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description="Dashboard analytics for Work Time Hero: task statistics per landing, workspace, project and profile view.",
    generate_unique_id_function=custom_generate_unique_id,
)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    from app.db import init_database

    init_database()


# Log every request with its status and duration
@app.middleware("http")
async def log_requests(request, call_next):
    started = time.perf_counter()
    logger.info("[REQUEST] %s %s", request.method, request.url)
    response = await call_next(request)
    logger.info(
        "[RESPONSE] %s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


app.openapi = custom_openapi

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS] or ["*"],
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Add throttling middleware for rate limiting
app.add_middleware(ThrottlingMiddleware)

app.include_router(api_router)


def check_database(db: Session) -> Dict[str, Any]:
    db.connection().execute(text("SELECT 1"))
    return {"status": "connected", "dialect": db.get_bind().dialect.name}


def check_redis() -> Dict[str, Any]:
    client = get_redis_client()
    client.ping()
    info = client.info()
    return {
        "status": "connected",
        "host": settings.REDIS_HOST,
        "port": settings.REDIS_PORT,
        "db": settings.REDIS_DB,
        "version": info.get("redis_version", "unknown"),
    }


@app.get("/health")
def health(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Health of the service and its database and Redis dependencies
    """
    health_data: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": "healthy",
        "services": {},
    }

    try:
        health_data["services"]["database"] = check_database(db)
    except SQLAlchemyError as e:
        health_data["services"]["database"] = {"status": "disconnected", "error": str(e)}
        health_data["status"] = "degraded"

    try:
        health_data["services"]["redis"] = check_redis()
    except (RedisError, OSError) as e:
        health_data["services"]["redis"] = {"status": "disconnected", "error": str(e)}
        health_data["status"] = "degraded"

    if health_data["status"] != "healthy":
        raise HTTPException(status_code=503, detail=health_data)
    return health_data


@app.get("/health/database")
def health_database(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Database health check endpoint
    """
    try:
        return check_database(db)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail={"status": "disconnected", "error": str(e)})


@app.get("/health/redis")
def health_redis() -> Dict[str, Any]:
    """
    Redis health check endpoint
    """
    try:
        return check_redis()
    except (RedisError, OSError) as e:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "disconnected",
                "error": str(e),
                "host": settings.REDIS_HOST,
                "port": settings.REDIS_PORT,
            },
        )
