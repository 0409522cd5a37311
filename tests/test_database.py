import logging
import threading

import pytest

from conftest import SETTINGS
from db.errors import ConfigurationError
from services.database import Database


@pytest.fixture
def database(connect):
    db = Database.from_mapping(SETTINGS, connect)
    yield db
    db.close()


def test_group_table_accessor_runs_crud(database, conn):
    users = database.group("main").table("users")

    assert users.add({"name": "alice", "role": "admin"}) is True
    assert users.update({"name": "bob"}, {"id": 1}) is True
    assert users.delete({"id": 1}) is True

    kinds = [sql.split()[0] for sql, _ in conn.statements]
    assert kinds == ["INSERT", "UPDATE", "DELETE"]


def test_table_handle_guards_unconditional_writes(database, conn):
    users = database.group("main").table("users")

    assert users.delete() is False
    assert users.update({"name": "x"}) is False
    assert conn.statements == []


def test_table_handle_get_and_query(database, conn):
    conn.rows = [{"id": 1}]
    users = database.group("main").table("users")

    assert users.get({"id": 1}) == [{"id": 1}]
    assert users.query().where({"id": 1}).first() == {"id": 1}


def test_unknown_group_or_table_raises(database):
    with pytest.raises(ConfigurationError):
        database.group("nope")
    with pytest.raises(ConfigurationError):
        database.group("logs").table("users")


def test_each_database_owns_its_caches(connect):
    first = Database.from_mapping(SETTINGS, connect)
    second = Database.from_mapping(SETTINGS, connect)

    first.columns_of(101)

    assert first.schema.is_cached(101) is True
    assert second.schema.is_cached(101) is False
    first.invalidate_schema()
    assert first.schema.is_cached(101) is False


def test_transaction_commits(database, conn):
    with database.transaction(1):
        assert conn.autocommit is False
        database.sql.insert(101, {"name": "a"})

    assert conn.commits == 1
    assert conn.rollbacks == 0
    assert conn.autocommit is True


def test_transaction_rolls_back_and_reraises(database, conn):
    with pytest.raises(RuntimeError):
        with database.transaction(1):
            raise RuntimeError("boom")

    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert conn.autocommit is True


def test_explicit_transaction_calls(database, conn):
    assert database.begin_transaction(1) is True
    assert database.rollback(1) is True
    assert database.begin_transaction(1) is True
    assert database.commit(1) is True
    assert (conn.commits, conn.rollbacks) == (1, 1)


def test_from_env(monkeypatch, connect):
    monkeypatch.setenv("SGTEST_DB_1_HOST", "localhost")
    monkeypatch.setenv("SGTEST_TABLE_101_NAME", "users")
    monkeypatch.setenv("SGTEST_MAPPING_1_NAME", "main")

    db = Database.from_env("SGTEST_", connect)

    assert db.group("main").table("users").table_id == 101


def test_database_log_table_receives_records(connect, conn):
    settings = dict(SETTINGS, logging={"enabled": True, "database_table_id": 103})
    db = Database.from_mapping(settings, connect)
    try:
        logging.getLogger("tests.audit").warning("disk almost full")
    finally:
        db.close()

    inserts = [(sql, params) for sql, params in conn.statements if sql.startswith('INSERT INTO "system_logs"')]
    assert len(inserts) == 1
    params = inserts[0][1]
    assert "disk almost full" in params.values()
    assert "warning" in params.values()
    assert "tests.audit" in params.values()


def test_close_closes_connections(connect, conn):
    db = Database.from_mapping(SETTINGS, connect)
    db.columns_of(101)

    db.close()

    assert conn.closed is True


def _finishes(call, timeout=5.0):
    result = {}
    worker = threading.Thread(target=lambda: result.setdefault("value", call()), daemon=True)
    worker.start()
    worker.join(timeout)
    assert not worker.is_alive(), "call did not return"
    return result["value"]


def test_first_write_with_log_table_attached(connect, conn):
    settings = dict(SETTINGS, logging={"enabled": True, "level": "INFO", "database_table_id": 103})
    db = Database.from_mapping(settings, connect)
    try:
        assert _finishes(lambda: db.sql.insert(101, {"name": "alice"})) is True
    finally:
        db.close()

    inserted = [sql.split('"')[1] for sql, _ in conn.statements if sql.startswith("INSERT")]
    assert "users" in inserted
    assert "system_logs" in inserted


def test_log_table_without_columns_is_skipped(connect, conn):
    settings = dict(SETTINGS, logging={"enabled": True, "level": "INFO", "database_table_id": 104})
    db = Database.from_mapping(settings, connect)
    try:
        assert _finishes(lambda: db.sql.insert(101, {"name": "alice"})) is True
        logging.getLogger("tests.audit").warning("still running")
    finally:
        db.close()

    inserted = [sql.split('"')[1] for sql, _ in conn.statements if sql.startswith("INSERT")]
    assert inserted == ["users"]
    assert [q["table"] for q in conn.catalog_queries].count("ghost") == 1
