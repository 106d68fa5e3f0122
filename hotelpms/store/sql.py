"""
hotelpms/store/sql.py

SQLAlchemy implementation of RecordStore.
"""
import logging
import threading
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hotelpms.models.ontology import COLLECTION_MODELS
from hotelpms.store.base import Filter, Record, RecordStore, StoreError

logger = logging.getLogger(__name__)


class SqlAlchemyStore(RecordStore):
    """
    Record store over the ORM tables in hotelpms.models.ontology.

    One session per call, committed or rolled back before returning, so
    every call is its own point-in-time request like the hosted store.

    Args:
        session_factory: sessionmaker (or any callable returning a Session)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        # SQLite connections are shared with worker threads
        self._lock = threading.RLock()

    # ---------- helpers ----------

    @staticmethod
    def _model(collection: str):
        model = COLLECTION_MODELS.get(collection)
        if model is None:
            raise StoreError(f"Unknown collection: {collection}", collection)
        return model

    @staticmethod
    def _to_record(obj) -> Record:
        return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}

    @staticmethod
    def _clause(model, flt: Filter):
        column = getattr(model, flt.field, None)
        if column is None:
            raise StoreError(f"Unknown field {flt.field} on {model.__tablename__}", model.__tablename__)
        if flt.op == "eq":
            return column.is_(None) if flt.value is None else column == flt.value
        if flt.op == "neq":
            return column.isnot(None) if flt.value is None else column != flt.value
        if flt.op == "gte":
            return column >= flt.value
        if flt.op == "lte":
            return column <= flt.value
        if flt.op == "in":
            return column.in_(list(flt.value))
        return column.ilike(flt.value)

    def _query(self, session: Session, model, filters: Sequence[Filter]):
        query = session.query(model)
        for flt in filters:
            query = query.filter(self._clause(model, flt))
        return query

    def _run(self, collection: str, action: str, work):
        with self._lock:
            session = self._session_factory()
            try:
                result = work(session)
                session.commit()
                return result
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Store {action} on {collection} failed: {e}")
                raise StoreError(f"Failed to {action} {collection}: {e}", collection) from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    # ---------- RecordStore ----------

    def insert(self, collection: str, values: Record) -> Record:
        model = self._model(collection)

        def work(session):
            obj = model(**values)
            session.add(obj)
            session.flush()
            return self._to_record(obj)

        return self._run(collection, "insert", work)

    def insert_many(self, collection: str, rows: Sequence[Record]) -> List[Record]:
        model = self._model(collection)

        def work(session):
            objs = [model(**row) for row in rows]
            session.add_all(objs)
            session.flush()
            return [self._to_record(obj) for obj in objs]

        return self._run(collection, "insert into", work)

    def update(self, collection: str, record_id: str, values: Record) -> Optional[Record]:
        model = self._model(collection)

        def work(session):
            obj = session.get(model, record_id)
            if obj is None:
                return None
            for key, value in values.items():
                setattr(obj, key, value)
            session.flush()
            return self._to_record(obj)

        return self._run(collection, "update", work)

    def update_where(self, collection: str, filters: Sequence[Filter], values: Record) -> int:
        model = self._model(collection)

        def work(session):
            return self._query(session, model, filters).update(
                values, synchronize_session=False
            )

        return self._run(collection, "update", work)

    def delete(self, collection: str, record_id: str) -> bool:
        model = self._model(collection)

        def work(session):
            obj = session.get(model, record_id)
            if obj is None:
                return False
            session.delete(obj)
            return True

        return self._run(collection, "delete from", work)

    def select(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Record]:
        model = self._model(collection)

        def work(session):
            query = self._query(session, model, filters)
            if order_by:
                column = getattr(model, order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return [self._to_record(obj) for obj in query.all()]

        return self._run(collection, "select from", work)

    def count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        model = self._model(collection)

        def work(session):
            query = session.query(func.count(model.id))
            for flt in filters:
                query = query.filter(self._clause(model, flt))
            return query.scalar() or 0

        return self._run(collection, "count", work)
