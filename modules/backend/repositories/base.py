"""
Base Repository.

Primary-key CRUD shared by the user, mission, badge, receipt,
transaction and gas-sponsorship repositories. Writes flush but never
commit; the session owner (request dependency or task) commits.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.exceptions import NotFoundError
from modules.backend.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Subclasses bind the model:

        class BadgeRepository(BaseRepository[Badge]):
            model = Badge
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: str) -> ModelType:
        """
        Raises:
            NotFoundError: "<Model> not found"
        """
        instance = await self.session.get(self.model, id)
        if instance is None:
            raise NotFoundError(f"{self.model.__name__} not found")
        return instance

    async def create(self, **kwargs: Any) -> ModelType:
        """Insert and refresh so server-side defaults are populated."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, id: str, **kwargs: Any) -> ModelType:
        """Set the given columns; unknown keys are ignored."""
        instance = await self.get_by_id(id)
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()
