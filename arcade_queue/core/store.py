"""
Record Store

Narrow repository over the four collections the core works with. Services
receive a RecordStore instead of touching the SQLAlchemy session, so the
only persistence operations they rely on are exact-match create / get /
set / remove.

Writes are flushed but never committed here; callers group them inside
transaction() so a queue update and its history entry persist together or
not at all.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from arcade_queue.core.exceptions import UpstreamUnavailableError
from arcade_queue.models import Arcade, ArcadeHistory, GroupBinding, AllowListEntry
from arcade_queue.utils.logging import get_logger

logger = get_logger(__name__)

COLLECTIONS = {
    "arcade": Arcade,
    "arcade_history": ArcadeHistory,
    "group_binding": GroupBinding,
    "allow_list": AllowListEntry,
}


class RecordStore:
    """Exact-match record access for one database session."""

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise KeyError(f"Unknown collection: {collection}") from None

    def _query(self, collection: str, filters: Dict[str, Any]):
        return self.db.query(self._model(collection)).filter_by(**filters)

    def create(self, collection: str, **fields: Any):
        record = self._model(collection)(**fields)
        try:
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Store create failed on {collection}: {e}")
            raise UpstreamUnavailableError("Record store write failed") from e
        return record

    def get(self, collection: str, **filters: Any) -> List[Any]:
        model = self._model(collection)
        try:
            return self._query(collection, filters).order_by(model.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Store read failed on {collection}: {e}")
            raise UpstreamUnavailableError("Record store read failed") from e

    def first(self, collection: str, **filters: Any) -> Optional[Any]:
        rows = self.get(collection, **filters)
        return rows[0] if rows else None

    def count(self, collection: str, **filters: Any) -> int:
        try:
            return self._query(collection, filters).count()
        except SQLAlchemyError as e:
            logger.error(f"Store count failed on {collection}: {e}")
            raise UpstreamUnavailableError("Record store read failed") from e

    def distinct(self, collection: str, field: str) -> List[Any]:
        column = getattr(self._model(collection), field)
        try:
            return [value for (value,) in self.db.query(column).distinct().all()]
        except SQLAlchemyError as e:
            logger.error(f"Store distinct failed on {collection}.{field}: {e}")
            raise UpstreamUnavailableError("Record store read failed") from e

    def set(self, collection: str, filters: Dict[str, Any], patch: Dict[str, Any]) -> int:
        """Apply patch to every matching record; returns the number matched."""
        rows = self.get(collection, **filters)
        for row in rows:
            for field, value in patch.items():
                setattr(row, field, value)
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Store update failed on {collection}: {e}")
            raise UpstreamUnavailableError("Record store write failed") from e
        return len(rows)

    def remove(self, collection: str, **filters: Any) -> int:
        try:
            removed = self._query(collection, filters).delete(synchronize_session="fetch")
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Store delete failed on {collection}: {e}")
            raise UpstreamUnavailableError("Record store write failed") from e
        return removed

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        """
        Commit everything written inside the block, or nothing.

        Nested blocks join the outermost one.
        """
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self.db.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Store commit failed: {e}")
                raise UpstreamUnavailableError("Record store commit failed") from e
