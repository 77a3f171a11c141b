"""User data-access layer used by authentication."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kontaflow.models import User


async def get_user_with_memberships(db: AsyncSession, user_id: int) -> User | None:
    """Return the user with group memberships eagerly loaded, or None."""
    stmt = select(User).options(selectinload(User.memberships)).where(User.id == user_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()
