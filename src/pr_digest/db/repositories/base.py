"""Base repository pattern implementation for async SQLAlchemy.

Provides session handling, keyed upserts and simple queries shared by
all repositories.
"""

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_digest.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    Usage:
        class ReviewRepository(BaseRepository[Review]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Review)

    Repositories never commit; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        """Initialize the repository with a session.

        Args:
            session: Async SQLAlchemy session (caller manages lifecycle)
            model_class: The SQLAlchemy model class this repository manages
        """
        self._session = session
        self._model_class = model_class

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    # -------------------------------------------------------------------------
    # Common Read Operations
    # -------------------------------------------------------------------------

    async def get_by_key(self, key: Mapping[str, Any]) -> ModelT | None:
        """Get an entity by its (possibly composite) primary key.

        Args:
            key: Primary key column names mapped to values

        Returns:
            Entity or None if not found
        """
        return await self._session.get(self._model_class, dict(key))

    async def _get_by_field(self, field_name: str, value: object) -> ModelT | None:
        stmt = select(self._model_class).where(getattr(self._model_class, field_name) == value)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self, limit: int | None = None) -> list[ModelT]:
        """Get all entities, optionally limited."""
        stmt = select(self._model_class)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Common Write Operations
    # -------------------------------------------------------------------------

    def add(self, entity: ModelT) -> ModelT:
        """Add an entity to the session (does not flush)."""
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self._session.flush()

    async def delete(self, entity: ModelT) -> None:
        """Mark an entity for deletion (happens on flush/commit)."""
        await self._session.delete(entity)

    async def _upsert(
        self,
        key: Mapping[str, Any],
        values: Mapping[str, Any],
    ) -> tuple[ModelT, bool]:
        """Insert an entity or overwrite every given field of the existing one.

        Args:
            key: Primary key column names mapped to values
            values: All non-key fields to store

        Returns:
            Tuple of (entity, created)
        """
        existing = await self.get_by_key(key)
        if existing is None:
            entity = self.add(self._model_class(**key, **values))
            await self.flush()
            return entity, True

        for field, value in values.items():
            setattr(existing, field, value)
        await self.flush()
        return existing, False

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    async def count(self) -> int:
        """Count total entities of this type."""
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._session.execute(stmt)
        return result.scalar() or 0
