"""
Database engine and session utilities.

A `Store` owns one engine and its session factory. It is opened once, shared
by every loader / simulation call, and disposed explicitly on shutdown or
before a schema rebuild.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from po_analytics.db.models import Base
from po_analytics.utils.config import ROOT_DIR, AppConfig, load_config

logger = logging.getLogger(__name__)


def resolve_database_url(raw_uri: Union[str, URL]) -> URL:
    """
    Normalise the configured database URI.

    Converts relative SQLite file paths into absolute ones rooted at the repo so
    scripts can run from any working directory.
    """
    url = make_url(raw_uri)
    if url.get_backend_name() == "sqlite":
        database = url.database
        if database and database not in {":memory:", ""}:
            db_path = Path(database)
            if not db_path.is_absolute():
                db_path = ROOT_DIR / db_path
            url = url.set(database=str(db_path))
    return url


class Store:
    """Process-wide handle on the embedded database."""

    def __init__(
        self,
        url: Union[str, URL],
        *,
        journal_mode: str = "WAL",
        echo: bool = False,
        create: bool = True,
    ) -> None:
        self.url = resolve_database_url(url)
        self.journal_mode = journal_mode
        self._ensure_sqlite_directory()

        is_sqlite = self.url.get_backend_name() == "sqlite"
        connect_args = {"check_same_thread": False} if is_sqlite else {}
        self.engine: Engine = create_engine(self.url, echo=echo, future=True, connect_args=connect_args)
        if is_sqlite:
            event.listen(self.engine, "connect", self._on_connect)
            event.listen(self.engine, "begin", self._on_begin)

        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
        )
        self._disposed = False
        if create:
            self.create_schema()

    def _ensure_sqlite_directory(self) -> None:
        if self.url.get_backend_name() != "sqlite":
            return
        database = self.url.database
        if not database or database in {":memory:", ""}:
            return
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    def _on_connect(self, dbapi_connection, connection_record) -> None:
        # pysqlite's implicit BEGIN breaks SAVEPOINT; SQLAlchemy emits BEGIN itself.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA journal_mode={self.journal_mode}")
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    def _on_begin(self, conn) -> None:
        conn.exec_driver_sql("BEGIN")

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @property
    def database_path(self) -> Optional[Path]:
        if not self.is_sqlite or self.url.database in {None, "", ":memory:"}:
            return None
        return Path(self.url.database)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def recreate_schema(self) -> None:
        """Drop and recreate every table. Destructive."""
        logger.warning("Recreating schema on %s", self.url.render_as_string(hide_password=True))
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager yielding a transactional SQLAlchemy session.

        Commits when the block completes, rolls back on exceptions and ensures
        the session is closed. The whole block is one transaction.
        """
        if self._disposed:
            raise RuntimeError("Store has been disposed")
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close pooled connections; the store cannot be used afterwards."""
        if not self._disposed:
            self.engine.dispose()
            self._disposed = True

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


def open_store(config: Optional[AppConfig] = None, **kwargs) -> Store:
    """Build a `Store` from CONFIG.yaml settings."""
    cfg = config or load_config()
    return Store(cfg.db.uri, journal_mode=cfg.db.journal_mode, **kwargs)


__all__ = ["Store", "open_store", "resolve_database_url"]
