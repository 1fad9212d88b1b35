"""Owner-scoped row store on top of a SQLAlchemy session.

Every read and write is filtered by ``user_id``: a row that exists but belongs
to someone else is indistinguishable from a missing row.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledgr.core.errors import NotFound, StorageUnavailable
from ledgr.db.base import Base


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class OwnedRepository(Generic[ModelT]):
    def __init__(self, db: Session, model: Type[ModelT], *, label: Optional[str] = None) -> None:
        self.db = db
        self.model = model
        self.label = label or model.__name__

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("row_store_failed", extra={"path": f"{self.model.__tablename__}:{operation}"})
            raise StorageUnavailable() from exc

    def _owned(self, user_id: str, record_id: str):
        return (self.model.id == record_id, self.model.user_id == user_id)

    def create(self, **values: Any) -> ModelT:
        record = self.model(**values)
        with self._storage_errors("create"):
            self.db.add(record)
            self.db.flush()
        return record

    def get(self, user_id: str, record_id: str) -> Optional[ModelT]:
        stmt = select(self.model).where(*self._owned(user_id, record_id))
        with self._storage_errors("get"):
            return self.db.execute(stmt).scalar_one_or_none()

    def get_or_404(self, user_id: str, record_id: str) -> ModelT:
        record = self.get(user_id, record_id)
        if record is None:
            raise NotFound(f"{self.label} not found")
        return record

    def update(self, user_id: str, record_id: str, values: dict[str, Any]) -> Optional[ModelT]:
        """Apply ``values`` in a single owner-filtered UPDATE and return the fresh row."""
        with self._storage_errors("update"):
            if values:
                result = self.db.execute(
                    update(self.model)
                    .where(*self._owned(user_id, record_id))
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return None
            stmt = (
                select(self.model)
                .where(*self._owned(user_id, record_id))
                .execution_options(populate_existing=True)
            )
            return self.db.execute(stmt).scalar_one_or_none()

    def delete(self, user_id: str, record_id: str) -> bool:
        with self._storage_errors("delete"):
            result = self.db.execute(
                delete(self.model)
                .where(*self._owned(user_id, record_id))
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0

    def list(
        self,
        user_id: str,
        *,
        order_by: Any = None,
        limit: Optional[int] = None,
        **filters: Any,
    ) -> List[ModelT]:
        stmt = select(self.model).where(self.model.user_id == user_id)
        for column, value in filters.items():
            stmt = stmt.where(getattr(self.model, column) == value)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._storage_errors("list"):
            return list(self.db.execute(stmt).scalars().all())

    def commit(self) -> None:
        with self._storage_errors("commit"):
            self.db.commit()
