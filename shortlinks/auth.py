"""Header-based admin authentication.

Every ``/admin/redirects`` route depends on ``require_admin``. The expected
key comes from ADMIN_API_KEY; when it is empty the admin API is closed rather
than open.
"""

import secrets

from fastapi import Depends, Request

from shortlinks.dependencies import RequestContext, get_request_context
from shortlinks.errors import RedirectServiceError, UnauthorizedError

__all__ = ["require_admin"]


async def require_admin(request: Request, ctx: RequestContext = Depends(get_request_context)) -> None:
    expected = ctx.settings.ADMIN_API_KEY
    if not expected:
        ctx.logger.error("Admin request rejected: ADMIN_API_KEY is not configured")
        raise RedirectServiceError("Admin API key not configured")

    provided = request.headers.get(ctx.settings.ADMIN_API_KEY_HEADER, "")
    if not secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        ctx.logger.warning("Admin request rejected: bad API key", extra={"path": request.url.path})
        raise UnauthorizedError()
