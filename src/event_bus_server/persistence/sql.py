"""SQL backed persistent store.

Values live in a single key/value table with a JSON column. The engine is
created lazily from the adapter's URL or ``EVENT_BUS_DATABASE_URL`` so that
constructing the adapter never touches the database. Blocking database work
runs in a worker thread to keep the event loop free.
"""

import asyncio
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import JSON, Column
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine, text
from tenacity import before_sleep_log, retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from event_bus_server.exceptions import PersistentStoreError
from event_bus_server.settings import get_settings

from .base import PersistentStoreAdapter


class KeyValueEntry(SQLModel, table=True):
    """One stored value."""

    __tablename__ = "event_bus_store"

    key: str = Field(primary_key=True, max_length=255)
    value: Any = Field(default=None, sa_column=Column(JSON, nullable=True))


class SQLStoreAdapter(PersistentStoreAdapter):
    """Store values in any database SQLAlchemy can talk to.

    Example:
        ```python
        bus.set_persistent_store(SQLStoreAdapter("postgresql+psycopg://user:pw@db/events"))
        store = bus.get_persistent_store()
        await store.set("last-order", {"orderNumber": "234"})
        ```
    """

    def __init__(self, database_url: str | None = None, echo: bool | None = None) -> None:
        self.database_url = database_url
        self.echo = echo
        self._engine: Engine | None = None

    def _build_engine(self) -> Engine:
        settings = get_settings()
        database_url = self.database_url or settings.database_url
        if not database_url:
            raise PersistentStoreError(
                "Database URL missing: pass it to SQLStoreAdapter or set EVENT_BUS_DATABASE_URL"
            )
        echo = settings.sql_log if self.echo is None else self.echo

        if database_url.startswith("sqlite"):
            engine = create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
        else:
            engine = create_engine(
                database_url,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                echo=echo,
            )

        SQLModel.metadata.create_all(engine, tables=[KeyValueEntry.__table__])
        logger.info(f"SQL store ready (table={KeyValueEntry.__tablename__}, echo={'enabled' if echo else 'disabled'})")
        return engine

    def get_engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._build_engine()
        return self._engine

    def dispose(self) -> None:
        """Dispose of the engine if it was created."""
        if self._engine is not None:
            logger.info("Closing SQL store connections")
            self._engine.dispose()
            self._engine = None

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
        retry=retry_if_not_exception_type(PersistentStoreError),
        before_sleep=before_sleep_log(logger, "DEBUG"),
    )
    def _create_session(self) -> Session:
        """Open a session and check the connection, retrying with backoff."""
        try:
            session = Session(self.get_engine())
            session.execute(text("SELECT 1"))
            return session
        except PersistentStoreError:
            raise
        except Exception as e:
            # Connection failed - dispose engine so it can be recreated on retry
            if self._engine is not None:
                logger.warning("SQL store connection failed, disposing engine for retry...")
                self._engine.dispose()
                self._engine = None
            logger.error(f"Failed to create SQL store session: {e}")
            raise

    @contextmanager
    def _session(self) -> Generator[Session]:
        session = self._create_session()
        try:
            yield session
        finally:
            session.close()

    def _get(self, key: str) -> Any:
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            return None if entry is None else entry.value

    def _set(self, key: str, value: Any) -> None:
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
                session.add(entry)
            session.commit()

    def _delete(self, key: str) -> None:
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()

    async def get(self, key: str) -> Any:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)
