"""
Database module for chainstats.
Provides transaction scoping and typed access to the primary store.
"""
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Tuple

from sqlalchemy import create_engine, inspect, select, text, MetaData
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
import structlog

from .errors import ConnectionFailure, StoreUnavailable
from .models import Base, LogTransaction

logger = structlog.get_logger()

DROP_ALL_TABLES_SQL = """
DO $$ DECLARE
    r RECORD;
BEGIN
    FOR r IN (SELECT tablename FROM pg_tables WHERE schemaname = current_schema()) LOOP
        EXECUTE 'DROP TABLE IF EXISTS ' || quote_ident(r.tablename) || ' CASCADE';
    END LOOP;
END $$;
"""

SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")


class DbTransaction:
    """A single unit of work that exclusively owns one connection.

    Use it as a context manager: leaving the block without calling
    ``commit`` rolls the work back and releases the connection.
    """

    def __init__(self, conn: Connection):
        self._conn = conn
        self._trans = conn.begin()
        self._finished = False

    def connection(self) -> Connection:
        """Return the connection bound to this transaction."""
        return self._conn

    def commit(self) -> None:
        """Commit the transaction.

        Raises:
            StoreUnavailable: If the store rejects the commit.
        """
        try:
            self._trans.commit()
        except SQLAlchemyError as e:
            logger.error("transaction_commit_failed", error=str(e))
            raise StoreUnavailable("commit failed") from e
        finally:
            self._finished = True

    def rollback(self) -> None:
        """Roll the transaction back. Errors are logged, never raised."""
        if self._finished:
            return
        self._finished = True
        try:
            self._trans.rollback()
        except SQLAlchemyError as e:
            logger.warning("transaction_rollback_failed", error=str(e))

    def close(self) -> None:
        self.rollback()
        try:
            self._conn.close()
        except SQLAlchemyError as e:
            logger.warning("connection_close_failed", error=str(e))

    def drop_tables(self) -> None:
        """Drop every table of the current schema. This cannot be undone.

        Raises:
            StoreUnavailable: If any drop statement fails.
        """
        try:
            if self._conn.dialect.name == "postgresql":
                self._conn.execute(text(DROP_ALL_TABLES_SQL))
            else:
                metadata = MetaData()
                metadata.reflect(bind=self._conn)
                metadata.drop_all(bind=self._conn)
        except SQLAlchemyError as e:
            logger.error("drop_tables_failed", error=str(e))
            raise StoreUnavailable("dropping all tables failed") from e
        logger.warning("all_tables_dropped")

    def __enter__(self) -> "DbTransaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DatabaseManager:
    """Manages the engine and connections to the primary store."""

    def __init__(self, db_url: str, **engine_kwargs: Any):
        """Initialize the database manager.

        Args:
            db_url: SQLAlchemy database URL.
            **engine_kwargs: Extra arguments passed to ``create_engine``
                (pool settings, timeouts, connect_args).
        """
        self.engine: Engine = create_engine(db_url, **engine_kwargs)
        logger.info("database_initialized", dialect=self.engine.dialect.name)

    def begin(self) -> DbTransaction:
        """Start a new transaction on a dedicated connection.

        Raises:
            ConnectionFailure: If no connection can be established.
        """
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            logger.error("cannot start transaction because of connection error", error=str(e))
            raise ConnectionFailure("cannot connect to the primary store") from e
        try:
            return DbTransaction(conn)
        except SQLAlchemyError as e:
            conn.close()
            logger.error("cannot start transaction", error=str(e))
            raise ConnectionFailure("cannot begin transaction") from e

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield an ambient connection for single read-only queries."""
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            logger.error("database_connection_failed", error=str(e))
            raise ConnectionFailure("cannot connect to the primary store") from e
        try:
            yield conn
        finally:
            conn.close()

    def init_schema(self, drop_existing: bool = False) -> None:
        """Create the store tables, optionally dropping everything first."""
        if drop_existing:
            with self.begin() as tx:
                tx.drop_tables()
                tx.commit()
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error("schema_creation_failed", error=str(e))
            raise StoreUnavailable("cannot create tables") from e
        logger.info("schema_initialized", drop_existing=drop_existing)

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        self.engine.dispose()
        logger.info("database_closed")

    def get_block_id(self, tx_hash: bytes) -> Tuple[int, bool]:
        """Resolve the block that contains a transaction.

        Args:
            tx_hash: Transaction hash.

        Returns:
            ``(block_id, True)`` when the transaction is known,
            ``(-1, False)`` otherwise.
        """
        query = select(LogTransaction.block).where(LogTransaction.hash == tx_hash)
        try:
            with self.connect() as conn:
                block_id = conn.execute(query).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("block_lookup_failed", error=str(e))
            raise StoreUnavailable("block lookup failed") from e
        if block_id is None:
            return -1, False
        return block_id, True

    def has_table_or_view(self, name: str) -> bool:
        """Check whether a base table or view with this name exists.

        Every schema except the system catalogs is searched. A failing
        lookup raises ``StoreUnavailable`` rather than reporting the table
        as missing.
        """
        try:
            with self.connect() as conn:
                inspector = inspect(conn)
                for schema in inspector.get_schema_names():
                    if schema in SYSTEM_SCHEMAS:
                        continue
                    if name in inspector.get_table_names(schema=schema):
                        return True
                    if name in inspector.get_view_names(schema=schema):
                        return True
                return False
        except SQLAlchemyError as e:
            logger.error("table_lookup_failed", table=name, error=str(e))
            raise StoreUnavailable(f"cannot look up table {name}") from e

    def has_table(self, model: Optional[type] = None, table_name: Optional[str] = None) -> bool:
        """Check whether the table of a declarative model exists."""
        if model is not None:
            table_name = model.__tablename__
        if not table_name:
            raise ValueError("Either model or table_name must be provided")
        try:
            with self.connect() as conn:
                return inspect(conn).has_table(table_name)
        except SQLAlchemyError as e:
            logger.error("table_lookup_failed", table=table_name, error=str(e))
            raise StoreUnavailable(f"cannot look up table {table_name}") from e
