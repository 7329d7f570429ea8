"""
FastAPI dependencies shared by the route modules.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.context import AppContext
from diygenie.infra.db.session import get_db
from diygenie.services.entitlements import EntitlementResolver
from diygenie.services.lifecycle import ProjectLifecycle

logger = logging.getLogger(__name__)


class AuthenticationError(HTTPException):
    """No caller identity on the request."""
    def __init__(self, detail: str = "Missing X-User-Id header"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Caller identity, established upstream (auth provider / gateway) and passed
    in the X-User-Id header.

    Outside production a configured `dev_user_id` stands in when the header is
    absent.
    """
    user_id = (x_user_id or "").strip()
    if user_id:
        return user_id
    settings = get_context(request).settings
    if settings.dev_user_id and not settings.is_production:
        logger.debug(f"No X-User-Id header, using dev user {settings.dev_user_id}")
        return settings.dev_user_id
    raise AuthenticationError()


def get_lifecycle(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> ProjectLifecycle:
    return ProjectLifecycle(db, context.settings, scheduler=context.runner.schedule)


def get_entitlement_resolver(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> EntitlementResolver:
    return EntitlementResolver(db, context.settings)
