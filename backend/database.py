# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine construction, the declarative base, and ``DocumentStore`` –
a small keyed-document facade over one ORM table.

The service layer only ever talks to a ``DocumentStore``:

    find_one(filter)             -> dict | None
    insert_one(document)         -> id
    update_one(filter, patch)    -> matched count
    delete_one(filter)           -> deleted count
    count_documents(filter)      -> count
    find(filter, skip, limit)    -> list[dict]

Filters are ``{column: value}`` equality maps; a value may also be
``{"$ne": value}``.  The store is constructed once per process and shared by
every request; each call opens and closes its own pooled session.
"""

from typing import Any, Optional

from sqlalchemy import create_engine, select, func, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def create_db_engine(database_url: str, connect_timeout: int = 10) -> Engine:
    """
    Build the process-wide engine.  ``connect_timeout`` bounds the initial
    connection handshake; individual queries carry no deadline.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # One engine serves the whole threadpool
        connect_args = {"check_same_thread": False, "timeout": connect_timeout}
    else:
        connect_args = {"connect_timeout": connect_timeout}
    # pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


class DocumentStore:
    def __init__(self, engine: Engine, model):
        self.engine = engine
        self.model = model
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        self._columns = {c.name for c in model.__table__.columns}

    # -- helpers -----------------------------------------------------------

    def _conditions(self, filter: dict) -> list:
        conditions = []
        for field, value in filter.items():
            if field not in self._columns:
                raise KeyError(f"unknown field {field!r}")
            column = getattr(self.model, field)
            if isinstance(value, dict):
                if set(value) != {"$ne"}:
                    raise ValueError(f"unsupported operator in {value!r}")
                conditions.append(column != value["$ne"])
            else:
                conditions.append(column == value)
        return conditions

    def _to_document(self, row) -> dict:
        return {name: getattr(row, name) for name in self._columns}

    # -- operations --------------------------------------------------------

    def ping(self) -> None:
        """Open a connection and run ``SELECT 1``.  Raises on failure."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def find_one(self, filter: dict) -> Optional[dict]:
        with self._session_factory() as db:
            row = db.execute(
                select(self.model).where(*self._conditions(filter)).limit(1)
            ).scalar_one_or_none()
            return self._to_document(row) if row is not None else None

    def insert_one(self, document: dict) -> Any:
        with self._session_factory() as db:
            row = self.model(**document)
            db.add(row)
            db.commit()
            return row.id

    def update_one(self, filter: dict, patch: dict) -> int:
        with self._session_factory() as db:
            row = db.execute(
                select(self.model).where(*self._conditions(filter)).limit(1)
            ).scalar_one_or_none()
            if row is None:
                return 0
            for field, value in patch.items():
                if field not in self._columns:
                    raise KeyError(f"unknown field {field!r}")
                setattr(row, field, value)
            db.commit()
            return 1

    def delete_one(self, filter: dict) -> int:
        with self._session_factory() as db:
            row = db.execute(
                select(self.model).where(*self._conditions(filter)).limit(1)
            ).scalar_one_or_none()
            if row is None:
                return 0
            db.delete(row)
            db.commit()
            return 1

    def count_documents(self, filter: dict) -> int:
        with self._session_factory() as db:
            return db.execute(
                select(func.count()).select_from(self.model).where(*self._conditions(filter))
            ).scalar_one()

    def find(self, filter: dict, skip: int = 0, limit: Optional[int] = None,
             sort: Optional[str] = None, descending: bool = False) -> list[dict]:
        query = select(self.model).where(*self._conditions(filter))
        if sort is not None:
            column = getattr(self.model, sort)
            query = query.order_by(column.desc() if descending else column.asc())
        query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        with self._session_factory() as db:
            return [self._to_document(row) for row in db.execute(query).scalars()]
