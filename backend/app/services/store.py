# backend/app/services/store.py
"""
Record store over SQLAlchemy.

Every public method runs in its own session and commits on exit, so callers
get single-record durability and nothing more: there is deliberately no way to
group writes to several records into one transaction from the services.

Two methods push checks down into the database so they cannot race:

- ``insert_guarded`` locks a guard row (``SELECT ... FOR UPDATE``) and only
  inserts if the guard predicate still holds.
- ``update`` accepts extra predicates and returns ``None`` when the row no
  longer satisfies them.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator, Sequence, TypeVar
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.db import SessionLocal
from ..core.errors import DuplicateRecordError, StoreError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class RecordStore:
    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def session(self) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Record store operation failed", extra={"step": "store"})
            raise StoreError() from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, model: type[ModelT], record_id: Any) -> ModelT | None:
        with self.session() as db:
            return db.get(model, record_id)

    def first(self, model: type[ModelT], *criteria: Any, order_by: Sequence[Any] = ()) -> ModelT | None:
        with self.session() as db:
            return (
                db.query(model)
                .filter(*criteria)
                .order_by(*order_by)
                .first()
            )

    def query(
        self,
        model: type[ModelT],
        *criteria: Any,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[ModelT]:
        with self.session() as db:
            q = db.query(model).filter(*criteria).order_by(*order_by)
            if offset:
                q = q.offset(offset)
            if limit is not None:
                q = q.limit(limit)
            return q.all()

    def count(self, model: type[ModelT], *criteria: Any) -> int:
        with self.session() as db:
            stmt = select(func.count()).select_from(model).where(*criteria)
            return int(db.execute(stmt).scalar_one())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, model: type[ModelT], values: dict[str, Any]) -> ModelT:
        with self.session() as db:
            record = model(**values)
            db.add(record)
            db.flush()
            return record

    def insert_guarded(
        self,
        model: type[ModelT],
        values: dict[str, Any],
        guard_model: type,
        guard_criteria: Iterable[Any],
    ) -> ModelT | None:
        """
        Insert ``values`` only if a ``guard_model`` row matching
        ``guard_criteria`` exists. The guard row stays locked until commit.

        Returns ``None`` (and writes nothing) when the guard does not hold.
        """
        with self.session() as db:
            guard = (
                db.query(guard_model)
                .filter(*guard_criteria)
                .with_for_update()
                .first()
            )
            if guard is None:
                return None
            record = model(**values)
            db.add(record)
            db.flush()
            return record

    def update(
        self,
        model: type[ModelT],
        record_id: Any,
        values: dict[str, Any],
        *criteria: Any,
    ) -> ModelT | None:
        """
        Apply ``values`` to one row, only if it also matches ``criteria``.

        Returns the updated record, or ``None`` if no row matched.
        """
        with self.session() as db:
            record = (
                db.query(model)
                .filter(model.id == record_id, *criteria)
                .with_for_update()
                .first()
            )
            if record is None:
                return None
            if hasattr(model, "updated_at") and "updated_at" not in values:
                values = {**values, "updated_at": datetime.utcnow()}
            for key, value in values.items():
                setattr(record, key, value)
            db.flush()
            return record

    def update_where(self, model: type, criteria: Iterable[Any], values: dict[str, Any]) -> int:
        """Bulk update; returns the number of rows touched."""
        with self.session() as db:
            return (
                db.query(model)
                .filter(*criteria)
                .update(values, synchronize_session=False)
            )

    def upsert(
        self,
        model: type[ModelT],
        values: dict[str, Any],
        conflict_keys: Sequence[str],
    ) -> ModelT:
        """
        Insert ``values`` or, if a row with the same ``conflict_keys`` exists,
        overwrite its non-key columns. Safe to repeat.
        """
        with self.session() as db:
            dialect = db.get_bind().dialect.name
            if dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert as dialect_insert
            elif dialect == "sqlite":
                from sqlalchemy.dialects.sqlite import insert as dialect_insert
            else:
                raise StoreError(f"upsert is not supported on dialect {dialect!r}")

            stmt = dialect_insert(model).values(**values)
            update_cols = {
                key: stmt.excluded[key]
                for key in values
                if key not in conflict_keys and key != "id"
            }
            if update_cols:
                stmt = stmt.on_conflict_do_update(index_elements=list(conflict_keys), set_=update_cols)
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_keys))
            db.execute(stmt)

            key_filter = [getattr(model, key) == values[key] for key in conflict_keys]
            return db.query(model).filter(*key_filter).one()
