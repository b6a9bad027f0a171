"""Home-scoped access control."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.core.exceptions import ForbiddenError, HomeNotFoundError
from dwella.models.home import Home, HomeAccess


async def require_home_owner(db: AsyncSession, home_id: str, user_id: str) -> Home:
    """Return the home if ``user_id`` owns it.

    Non-owners get the same 404 as a missing home so ownership is not leaked.
    """
    result = await db.execute(
        select(Home).where(Home.id == home_id, Home.owner_id == user_id)
    )
    home = result.scalar_one_or_none()
    if home is None:
        raise HomeNotFoundError(home_id)
    return home


async def require_home_access(db: AsyncSession, home_id: str, user_id: str) -> Home:
    """Return the home if ``user_id`` owns it or holds a HomeAccess grant."""
    home = await db.get(Home, home_id)
    if home is None:
        raise HomeNotFoundError(home_id)
    if home.owner_id == user_id:
        return home

    result = await db.execute(
        select(HomeAccess.id).where(
            HomeAccess.home_id == home_id,
            HomeAccess.user_id == user_id,
        )
    )
    if result.scalar_one_or_none() is None:
        raise ForbiddenError("You do not have access to this home")
    return home
