"""Request identity resolution.

Routes only see a ``UserContext``. How it is obtained is behind the
``IdentityResolver`` protocol: the development stub below trusts a numeric
user id sent in a header. A token-verifying resolver can replace it without
touching routes or services.
"""

from dataclasses import dataclass
from typing import Protocol

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kontaflow.exceptions import ForbiddenError, UnauthorizedError
from kontaflow.logging import get_logger
from kontaflow.repositories.user import get_user_with_memberships

logger = get_logger(__name__)


@dataclass(frozen=True)
class UserContext:
    """Authenticated caller plus the group they are currently working in."""

    id: int
    email: str
    name: str
    group_id: int
    role: str


class IdentityResolver(Protocol):
    async def resolve(self, request: Request, db: AsyncSession) -> UserContext:
        """Return the caller or raise UnauthorizedError / ForbiddenError."""
        ...


class HeaderIdentityResolver:
    """Development-only resolver reading the user id from a trusted header.

    - missing / non-numeric header or unknown user → UnauthorizedError
    - deactivated user or user without any group    → ForbiddenError

    The active group is the user's first membership (lowest group id).
    """

    def __init__(self, header: str = "X-User-Id") -> None:
        self.header = header

    async def resolve(self, request: Request, db: AsyncSession) -> UserContext:
        raw_id = request.headers.get(self.header)
        if not raw_id:
            raise UnauthorizedError("No authentication was provided")
        if not raw_id.isdigit():
            raise UnauthorizedError("Invalid user identifier")

        try:
            user = await get_user_with_memberships(db, int(raw_id))
        except SQLAlchemyError:
            logger.exception("auth_lookup_failed", user_id=raw_id)
            raise UnauthorizedError("Could not authenticate the user") from None

        if user is None:
            raise UnauthorizedError("User not found")
        if not user.active:
            raise ForbiddenError("User is deactivated")
        if not user.memberships:
            raise ForbiddenError("User has no economic group assigned")

        membership = user.memberships[0]
        logger.debug("user_authenticated", user_id=user.id, group_id=membership.group_id)
        return UserContext(
            id=user.id,
            email=user.email,
            name=user.name,
            group_id=membership.group_id,
            role=membership.role,
        )
