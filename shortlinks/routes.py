"""FastAPI route definitions for the redirect service.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   /admin/redirects                      (admin key required)
        ├─ RedirectCreate (request body)
        └─ CreatedResponse (201) or 400/409

    GET    /admin/redirects/check?group=&slug=
        └─ SlugCheckResponse (200) or 400

    GET    /admin/redirects?page=&pageSize=
        └─ RedirectPage (200) or 400

    GET    /admin/redirects/by-user?user=&page=&pageSize=
        └─ UserRedirectPage (200) or 400

    GET    /admin/redirects/:group/:slug
        └─ RedirectDetail (200) or 400/404/500

    PUT    /admin/redirects/:group/:slug
        ├─ RedirectUpdate (request body)
        └─ UpdatedResponse (200) or 400/404/409

    DELETE /admin/redirects/:group/:slug
        └─ DeletedResponse (200) or 400/404

    GET    /:group/:slug
        └─ 302 Redirect or 400/404/500

Key Behaviours
===============
- Admin routes are registered before the public catch-all, and a public path
  whose first segment is "admin" is never resolved.
- Errors raised by the core are RedirectServiceError subclasses; main.py turns
  them into {"detail": ...} responses with the right status code.
- Auth is a router-level dependency on every admin route.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from shortlinks.auth import require_admin
from shortlinks.config import get_settings
from shortlinks.dependencies import RequestContext, get_repository, get_request_context, get_resolver
from shortlinks.enums import HealthStatus
from shortlinks.errors import BadRequestError, NotFoundError
from shortlinks.keys import ALL_PARTITION, is_valid_group, is_valid_slug, make_key, user_partition
from shortlinks.repository import PageResult, RedirectRepository
from shortlinks.resolver import RedirectResolver
from shortlinks.schemas import (
    CreatedResponse,
    DeletedResponse,
    HealthResponse,
    RedirectCreate,
    RedirectDetail,
    RedirectEntry,
    RedirectPage,
    RedirectUpdate,
    SlugCheckResponse,
    UpdatedResponse,
    UserRedirectPage,
)

__all__ = ["router", "admin_router", "public_router"]

settings = get_settings()

router = APIRouter()
admin_router = APIRouter(prefix="/admin/redirects", tags=["admin"], dependencies=[Depends(require_admin)])
public_router = APIRouter(tags=["redirect"])


def _path_key(group: str, slug: str) -> str:
    if not is_valid_group(group) or not is_valid_slug(slug):
        raise BadRequestError("Invalid path")
    return make_key(group, slug)


def _page_fields(result: PageResult) -> dict:
    index_page = result.index_page
    return {
        "page": index_page.page,
        "page_size": index_page.page_size,
        "total_items": index_page.total_items,
        "total_pages": index_page.total_pages,
        "items": [RedirectEntry(key=key, data=record) for key, record in result.records],
    }


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    cache_status = HealthStatus.HEALTHY
    try:
        await ctx.cache_writer.ping()
        ctx.logger.debug("Cache health check passed")
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=cache_status, cache=cache_status)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.post("", response_model=CreatedResponse, status_code=201)
async def create_redirect(
    payload: RedirectCreate,
    ctx: RequestContext = Depends(get_request_context),
    repository: RedirectRepository = Depends(get_repository),
) -> CreatedResponse:
    record = await repository.create(payload)
    ctx.logger.info(
        f"Redirect created via API: {record.key}",
        extra={"operation": "create_redirect", "duration_ms": ctx.get_duration()},
    )
    return CreatedResponse(key=record.key)


@admin_router.get("/check", response_model=SlugCheckResponse)
async def check_slug(
    group: str = Query(...),
    slug: str = Query(...),
    repository: RedirectRepository = Depends(get_repository),
) -> SlugCheckResponse:
    if not is_valid_group(group) or not is_valid_slug(slug):
        raise BadRequestError("Invalid group or slug")
    key = make_key(group, slug)
    return SlugCheckResponse(key=key, exists=await repository.exists(key))


@admin_router.get("/by-user", response_model=UserRedirectPage)
async def list_redirects_by_user(
    user: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=settings.MAX_PAGE_SIZE),
    repository: RedirectRepository = Depends(get_repository),
) -> UserRedirectPage:
    result = await repository.list_page(user_partition(user), page, page_size)
    return UserRedirectPage(user=user, **_page_fields(result))


@admin_router.get("", response_model=RedirectPage)
async def list_redirects(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=settings.MAX_PAGE_SIZE),
    repository: RedirectRepository = Depends(get_repository),
) -> RedirectPage:
    result = await repository.list_page(ALL_PARTITION, page, page_size)
    return RedirectPage(**_page_fields(result))


@admin_router.get("/{group}/{slug}", response_model=RedirectDetail)
async def get_redirect(
    group: str,
    slug: str,
    repository: RedirectRepository = Depends(get_repository),
) -> RedirectDetail:
    key = _path_key(group, slug)
    record = await repository.get(key)
    return RedirectDetail(key=key, data=record, clicks=await repository.clicks(key))


@admin_router.put("/{group}/{slug}", response_model=UpdatedResponse, response_model_exclude_none=True)
async def update_redirect(
    group: str,
    slug: str,
    patch: RedirectUpdate,
    repository: RedirectRepository = Depends(get_repository),
) -> UpdatedResponse:
    key = _path_key(group, slug)
    result = await repository.update(key, patch)
    if result.renamed:
        return UpdatedResponse(message="Updated and key moved", old_key=result.old_key, new_key=result.new_key)
    return UpdatedResponse(message="Updated", key=key)


@admin_router.delete("/{group}/{slug}", response_model=DeletedResponse)
async def delete_redirect(
    group: str,
    slug: str,
    repository: RedirectRepository = Depends(get_repository),
) -> DeletedResponse:
    key = _path_key(group, slug)
    await repository.delete(key)
    return DeletedResponse(key=key)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/{group}/{slug}")
async def redirect_to_target(
    group: str,
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    resolver: RedirectResolver = Depends(get_resolver),
) -> RedirectResponse:
    if group == "admin":
        raise NotFoundError()

    target = await resolver.resolve(group, slug)
    ctx.logger.info(
        f"Redirect successful: {group}/{slug} -> {target}",
        extra={"operation": "redirect", "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=target, status_code=302)


router.include_router(admin_router)
router.include_router(public_router)
