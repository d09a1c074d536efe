import pytest
from unittest.mock import Mock, patch

from sqlalchemy import func, insert, select, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from chainstats.database import DatabaseManager, DbTransaction
from chainstats.errors import ConnectionFailure, StoreUnavailable
from chainstats.models import BlockChain, LogTransaction
from tests.conftest import add_block, add_log_transaction


def count_blocks(db):
    with db.connect() as conn:
        return conn.execute(select(func.count()).select_from(BlockChain)).scalar_one()


def test_commit_persists_work(db):
    """Work committed inside a transaction is visible afterwards."""
    with db.begin() as tx:
        tx.connection().execute(insert(BlockChain).values(
            id=1, hash=b"h", data=b"abc", time=10, tx=2
        ))
        tx.commit()

    assert count_blocks(db) == 1


def test_exit_without_commit_rolls_back(db):
    """Leaving the block without commit discards the work."""
    with db.begin() as tx:
        tx.connection().execute(insert(BlockChain).values(
            id=1, hash=b"h", data=b"abc", time=10, tx=2
        ))

    assert count_blocks(db) == 0


def test_exception_rolls_back_and_propagates(db):
    with pytest.raises(RuntimeError):
        with db.begin() as tx:
            tx.connection().execute(insert(BlockChain).values(
                id=1, hash=b"h", data=b"abc", time=10, tx=2
            ))
            raise RuntimeError("caller failure")

    assert count_blocks(db) == 0


def test_rollback_never_raises():
    """Rollback errors are swallowed."""
    conn = Mock()
    conn.begin.return_value.rollback.side_effect = SQLAlchemyError("connection lost")
    tx = DbTransaction(conn)

    tx.rollback()
    tx.close()

    conn.begin.return_value.rollback.assert_called_once()
    conn.close.assert_called_once()


def test_commit_failure_raises_store_unavailable():
    conn = Mock()
    conn.begin.return_value.commit.side_effect = SQLAlchemyError("serialization failure")
    tx = DbTransaction(conn)

    with pytest.raises(StoreUnavailable):
        tx.commit()

    # A failed commit is not rolled back a second time
    tx.rollback()
    conn.begin.return_value.rollback.assert_not_called()


def test_begin_raises_connection_failure(db):
    error = OperationalError("connect", {}, Exception("connection refused"))
    with patch.object(db.engine, "connect", side_effect=error):
        with pytest.raises(ConnectionFailure):
            db.begin()


def test_drop_tables(seeded_db):
    with seeded_db.begin() as tx:
        tx.drop_tables()
        tx.commit()

    assert not seeded_db.has_table(BlockChain)
    assert not seeded_db.has_table(LogTransaction)


def test_init_schema_drop_existing(seeded_db):
    seeded_db.init_schema(drop_existing=True)

    assert seeded_db.has_table(BlockChain)
    assert count_blocks(seeded_db) == 0


def test_get_block_id(db):
    add_log_transaction(db, b"\xaa" * 32, 42)

    assert db.get_block_id(b"\xaa" * 32) == (42, True)
    assert db.get_block_id(b"\xbb" * 32) == (-1, False)


def test_get_block_id_store_error(db):
    with db.begin() as tx:
        tx.drop_tables()
        tx.commit()

    with pytest.raises(StoreUnavailable):
        db.get_block_id(b"\xaa" * 32)


def test_has_table_or_view(db):
    with db.begin() as tx:
        tx.connection().execute(text("CREATE VIEW recent_blocks AS SELECT id, tx FROM block_chain"))
        tx.commit()

    assert db.has_table_or_view("block_chain")
    assert db.has_table_or_view("recent_blocks")
    assert not db.has_table_or_view("missing_table")


def test_has_table_or_view_lookup_error_is_not_absence(db):
    """A failing lookup is reported instead of being read as 'not found'."""
    with patch("chainstats.database.inspect", side_effect=SQLAlchemyError("permission denied")):
        with pytest.raises(StoreUnavailable):
            db.has_table_or_view("block_chain")


def test_has_table_or_view_searches_every_user_schema(db):
    inspector = Mock()
    inspector.get_schema_names.return_value = ["information_schema", "main", "audit"]
    inspector.get_table_names.side_effect = lambda schema=None: ["archived_blocks"] if schema == "audit" else []
    inspector.get_view_names.return_value = []

    with patch("chainstats.database.inspect", return_value=inspector):
        assert db.has_table_or_view("archived_blocks")
        assert not db.has_table_or_view("missing_table")

    searched = {c.kwargs["schema"] for c in inspector.get_table_names.call_args_list}
    assert "information_schema" not in searched
    assert "audit" in searched


def test_has_table(db):
    assert db.has_table(BlockChain)
    assert db.has_table(table_name="log_transactions")
    assert not db.has_table(table_name="missing_table")

    with pytest.raises(ValueError):
        db.has_table()


def test_blocks_survive_separate_connections(db):
    add_block(db, 7, tx=1, length=10, time=5)
    assert count_blocks(db) == 1
