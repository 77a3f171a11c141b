"""Shared FastAPI dependencies.

Reusable type aliases and dependency functions that routers import.
Defined here (not in main.py) to avoid circular imports when routers
are registered in main.

Repositories and services are built per request from the request session,
so there is no process-wide service state and tests can swap any piece via
``app.dependency_overrides``.
"""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from kontaflow.auth import HeaderIdentityResolver, IdentityResolver, UserContext
from kontaflow.config import Settings, get_settings
from kontaflow.db.session import get_db
from kontaflow.repositories.group import GroupRepository
from kontaflow.services.group import GroupService

DB = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_identity_resolver(settings: AppSettings) -> IdentityResolver:
    return HeaderIdentityResolver(settings.auth_header)


async def get_current_user(
    request: Request,
    db: DB,
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> UserContext:
    """Resolve the caller and expose it to logs and error handlers."""
    user = await resolver.resolve(request, db)
    request.state.user = user
    structlog.contextvars.bind_contextvars(user_id=user.id, group_id=user.group_id)
    return user


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def get_group_service(db: DB, settings: AppSettings) -> GroupService:
    return GroupService(
        GroupRepository(db),
        scope_listing_to_member=settings.scope_group_listing_to_member,
        require_admin_for_mutations=settings.require_group_admin_for_mutations,
    )


GroupServiceDep = Annotated[GroupService, Depends(get_group_service)]
