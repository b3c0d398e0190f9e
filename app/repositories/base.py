"""Generic async repository built on SQLAlchemy 2.0.

One implementation of create / get / filtered page / scan / count / update /
delete, specialised per entity by subclassing with ``model`` set. Store
errors are translated into the application error taxonomy here so raw
driver messages never reach the services or the client.
"""
import logging
import uuid
from typing import Any, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from app.database import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


def translate_store_error(exc: SQLAlchemyError) -> Exception:
    """Map a SQLAlchemy error onto the application error taxonomy."""
    if isinstance(exc, IntegrityError):
        text = str(exc.orig if exc.orig is not None else exc).lower()
        if "unique" in text or "duplicate" in text:
            return ConflictError("Duplicate value for unique field")
        if "foreign key" in text:
            return ValidationError("Invalid reference to related resource")
        if "not null" in text or "null value" in text:
            return ValidationError("Missing required field")
    logger.error(f"Database error: {exc}")
    return DatabaseError()


class BaseRepository(Generic[ModelT]):
    """
    CRUD repository for one mapped model.

    Usage:
        class VendorRepository(BaseRepository[Vendor]):
            model = Vendor

        vendors = VendorRepository(db)
        items, total = await vendors.find_many(Vendor.is_active.is_(True), page=1, size=20)
    """

    model: Type[ModelT]

    def __init__(self, db: AsyncSession, model: Optional[Type[ModelT]] = None):
        self.db = db
        if model is not None:
            self.model = model
        if getattr(self, "model", None) is None:
            raise TypeError(f"{type(self).__name__} requires a model")

    def _default_order(self) -> list:
        created_at = getattr(self.model, "created_at", None)
        if created_at is None:
            return [self.model.id]
        # id breaks ties so offset paging is stable
        return [created_at.desc(), self.model.id]

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise translate_store_error(exc) from exc

    async def commit(self) -> None:
        """Commit the unit of work, translating store errors."""
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise translate_store_error(exc) from exc

    async def create(self, **values: Any) -> ModelT:
        entity = self.model(**values)
        self.db.add(entity)
        await self._flush()
        return entity

    async def get_by_id(self, id: uuid.UUID, options: Sequence[Any] = ()) -> Optional[ModelT]:
        stmt = select(self.model).where(self.model.id == id)
        if options:
            stmt = stmt.options(*options).execution_options(populate_existing=True)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise translate_store_error(exc) from exc
        return result.scalar_one_or_none()

    async def get_or_404(
        self,
        id: uuid.UUID,
        message: str = "Resource not found",
        options: Sequence[Any] = (),
    ) -> ModelT:
        entity = await self.get_by_id(id, options=options)
        if entity is None:
            raise NotFoundError(message)
        return entity

    async def find_first(self, *where: Any, options: Sequence[Any] = ()) -> Optional[ModelT]:
        stmt = select(self.model).where(*where).options(*options).order_by(*self._default_order()).limit(1)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise translate_store_error(exc) from exc
        return result.scalars().first()

    async def count(self, *where: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*where)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise translate_store_error(exc) from exc
        return result.scalar() or 0

    async def scan(
        self,
        *where: Any,
        offset: int = 0,
        limit: int = 100,
        order_by: Optional[Sequence[Any]] = None,
        options: Sequence[Any] = (),
    ) -> List[ModelT]:
        """Fetch one window of rows. Used for list pages and CSV export paging."""
        stmt = (
            select(self.model)
            .where(*where)
            .options(*options)
            .order_by(*(order_by or self._default_order()))
            .offset(offset)
            .limit(limit)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise translate_store_error(exc) from exc
        return list(result.scalars().all())

    async def find_many(
        self,
        *where: Any,
        page: int = 1,
        size: int = 20,
        order_by: Optional[Sequence[Any]] = None,
        options: Sequence[Any] = (),
    ) -> Tuple[List[ModelT], int]:
        """Return one page of matching rows and the total match count."""
        total = await self.count(*where)
        items = await self.scan(
            *where,
            offset=(page - 1) * size,
            limit=size,
            order_by=order_by,
            options=options,
        )
        return items, total

    async def update(self, entity: ModelT, **values: Any) -> ModelT:
        for field, value in values.items():
            setattr(entity, field, value)
        await self._flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self._flush()
