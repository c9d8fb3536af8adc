"""FastAPI application entry point for the redirect service.

This module configures and initializes the FastAPI application with middleware,
lifecycle management, error handlers and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ service mgr │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌──────────────────┐
    │ lifespan()       │
    │ shutdown:        │
    │ drain increments │
    │ close_redis()    │
    └──────────────────┘

How to Use
===========
**Step 1: Run with uvicorn**::
    ADMIN_API_KEY=secret uvicorn shortlinks.main:app --host 0.0.0.0 --port 8080

**Step 2: Register a redirect**::
    curl -X POST http://localhost:8080/admin/redirects \
         -H "X-Admin-Api-Key: secret" -H "Content-Type: application/json" \
         -d '{"group": "ab", "slug": "home", "target": "https://example.com", "createdBy": "u1"}'

**Step 3: Follow it**::
    curl -i http://localhost:8080/ab/home

Key Behaviours
===============
- Redis connections are established lazily on first use.
- Core errors map to {"detail": ...} with their own status code.
- Request validation errors are answered with 400 instead of FastAPI's 422.
- Pending click increments are awaited before Redis is closed.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from redis.exceptions import RedisError

from shortlinks.config import get_settings
from shortlinks.dependencies import _service_manager
from shortlinks.errors import RedirectServiceError, StorageError
from shortlinks.redis import close_redis
from shortlinks.resolver import drain_pending_increments
from shortlinks.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    yield
    # Shutdown
    await drain_pending_increments()
    await _service_manager.cleanup()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Grouped short links with redirect counting",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RedirectServiceError)
async def redirect_service_error_handler(request: Request, exc: RedirectServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": StorageError.default_detail})


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
