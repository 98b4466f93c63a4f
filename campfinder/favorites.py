"""
Saved camps per user
"""
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from campfinder.config import logger
from campfinder.database.models import Favorite
from campfinder.models.camp import AuthenticatedUser


class FavoritesService:
    """
    Every operation needs a signed-in user. Without one, or when the database
    call fails, the operation reports failure (``False`` / ``[]``) instead of
    raising.
    """
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def list_camp_ids(self, user: Optional[AuthenticatedUser]) -> List[str]:
        if user is None:
            return []

        try:
            async with self.session_factory() as session:
                stmt = (
                    select(Favorite.camp_id)
                    .where(Favorite.user_id == user.sub)
                    .order_by(Favorite.id)
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching favorites: {e}")
            return []

    async def add(self, user: Optional[AuthenticatedUser], camp_id: str) -> bool:
        if user is None:
            return False

        async with self.session_factory() as session:
            try:
                session.add(Favorite(user_id=user.sub, camp_id=camp_id))
                await session.commit()
                return True
            except IntegrityError:
                # Already saved
                await session.rollback()
                return True
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error adding favorite: {e}")
                return False

    async def remove(self, user: Optional[AuthenticatedUser], camp_id: str) -> bool:
        if user is None:
            return False

        async with self.session_factory() as session:
            try:
                stmt = delete(Favorite).where(
                    Favorite.user_id == user.sub,
                    Favorite.camp_id == camp_id,
                )
                await session.execute(stmt)
                await session.commit()
                return True
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error removing favorite: {e}")
                return False

    async def is_favorite(self, user: Optional[AuthenticatedUser], camp_id: str) -> bool:
        return camp_id in await self.list_camp_ids(user)
