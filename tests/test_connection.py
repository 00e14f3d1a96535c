"""Tests for Connection: registry, reconnect, transactions and teardown."""

import pytest

from dbshim.connection import Connection
from dbshim.errors import (
    DialectFeatureError,
    DriverError,
    InvalidArgumentError,
    ParameterCountMismatchError,
    RowLockedError,
    UnknownStatementError,
)
from dbshim.sql.dialect import Dialect
from dbshim.statements import PreparedStatementTemplate, ReturnType

from conftest import FakeDriver

FIND_USER = PreparedStatementTemplate.create(
    "find_user", "SELECT id, name FROM users WHERE id = ?", params=["id"]
)
RENAME_USER = PreparedStatementTemplate.create(
    "rename_user", "UPDATE users SET name = ? WHERE id = ?", params=["name", "id"]
)


def _prepares(fake):
    prepares = []
    for call in fake.calls:
        if call[0] == "prepare":
            prepares.append(call[1])
    return prepares


def test_connect_detects_dialect():
    driver = FakeDriver(Dialect.ORACLE)
    connection = Connection(driver)

    connection.connect()

    assert connection.is_connected
    assert connection.dialect is Dialect.ORACLE
    assert connection.builder.dialect is Dialect.ORACLE


def test_configured_dialect_wins():
    driver = FakeDriver(Dialect.GENERIC)
    connection = Connection(driver, dialect=Dialect.POSTGRESQL)

    connection.connect()

    assert connection.dialect is Dialect.POSTGRESQL


def test_connect_passes_autocommit():
    driver = FakeDriver()
    connection = Connection(driver, autocommit=True)

    connection.connect()

    assert driver.current.autocommit is True


def test_registering_same_name_twice_keeps_first(fake_connection, fake_driver):
    """A second prepare with the same name is a no-op."""
    first = fake_connection.prepare(FIND_USER)
    other = PreparedStatementTemplate.create("find_user", "SELECT 1")

    second = fake_connection.prepare(other)

    assert second is first
    assert second.sql == FIND_USER.sql
    assert _prepares(fake_driver.current) == [FIND_USER.sql]


def test_prepare_insert_is_idempotent(fake_connection, fake_driver):
    fake_connection.prepare_insert("add", "users", {"id": "?", "name": "?"})
    fake_connection.prepare_insert("add", "users", {"other": "?"})

    assert _prepares(fake_driver.current) == ["INSERT INTO users (id,name) VALUES (?,?)"]


def test_prepare_with_bad_parameter_count_is_not_registered(fake_connection):
    template = PreparedStatementTemplate.create("bad", "SELECT ? , ?", params=["a"])

    with pytest.raises(ParameterCountMismatchError):
        fake_connection.prepare(template)

    assert not fake_connection.has_prepared_statement("bad")


def test_execute_unknown_statement(fake_connection):
    with pytest.raises(UnknownStatementError):
        fake_connection.execute("nope", {})


def test_execute_accumulates_uncommitted_rows(fake_connection, fake_driver):
    fake_connection.prepare(RENAME_USER)
    fake_driver.current.update_count = 3

    fake_connection.execute("rename_user", {"id": "1", "name": "A"})
    fake_connection.execute("rename_user", {"id": "2", "name": "B"})

    assert fake_connection.uncommitted_rows == 6
    assert fake_connection.last_sql == RENAME_USER.sql


def test_execute_mismatch_makes_no_driver_call(fake_connection, fake_driver):
    fake_connection.prepare(RENAME_USER)
    calls_before = list(fake_driver.current.calls)

    with pytest.raises(ParameterCountMismatchError):
        fake_connection.execute("rename_user", {"id": "1"})

    assert fake_driver.current.calls == calls_before
    assert fake_connection.uncommitted_rows == 0


def test_execute_query_returns_rows(fake_connection, fake_driver):
    template = PreparedStatementTemplate.create(
        "find_xml", FIND_USER.sql, params=["id"], return_type="XML"
    )
    fake_connection.prepare(template)
    fake_driver.current.result_columns = ["id", "name"]
    fake_driver.current.result_rows = [(1, "Alice"), (2, None)]

    result = fake_connection.execute_query("find_xml", {"id": "1"})

    assert result.rows == [{"id": "1", "name": "Alice"}, {"id": "2"}]
    assert result.return_type is ReturnType.XML
    assert fake_driver.current.cursors[-1].closed


def test_wrong_execute_method_for_kind(fake_connection):
    fake_connection.prepare(FIND_USER)
    fake_connection.prepare(RENAME_USER)

    with pytest.raises(InvalidArgumentError):
        fake_connection.execute("find_user", {"id": "1"})
    with pytest.raises(InvalidArgumentError):
        fake_connection.execute_query("rename_user", {"id": "1", "name": "x"})


def test_reconnect_restores_statements(fake_connection, fake_driver):
    """After reconnect a registered statement runs without re-registration."""
    fake_connection.prepare(RENAME_USER)
    old = fake_driver.current

    fake_connection.reconnect()

    new = fake_driver.current
    assert new is not old
    assert old.closed
    assert old.statements[0].closed
    assert _prepares(new) == [RENAME_USER.sql]

    fake_connection.execute("rename_user", {"id": "1", "name": "A"})

    assert new.calls[-1] == ("execute_update", RENAME_USER.sql)


def test_reconnect_ignores_close_failure_of_old_connection(fake_connection, fake_driver):
    fake_connection.prepare(RENAME_USER)
    old = fake_driver.current
    old.close_error = DriverError("socket gone")
    old.statements[0].close_error = DriverError("socket gone")

    fake_connection.reconnect()

    assert fake_connection.is_connected
    assert fake_driver.current is not old


def test_reconnect_failure_leaves_connection_closed(fake_connection, fake_driver):
    fake_connection.prepare(RENAME_USER)
    fake_driver.connect_error = DriverError("refused", "08001")

    with pytest.raises(DriverError):
        fake_connection.reconnect()

    assert not fake_connection.is_connected
    assert fake_connection.has_prepared_statement("rename_user")

    fake_driver.connect_error = None
    fake_connection.reconnect()

    assert _prepares(fake_driver.current) == [RENAME_USER.sql]


def test_reconnect_reapplies_date_format():
    driver = FakeDriver(Dialect.ORACLE)
    connection = Connection(driver)
    connection.connect()
    connection.set_date_format("YYYY-MM-DD")

    connection.reconnect()

    directive = "ALTER SESSION SET nls_date_format = 'YYYY-MM-DD'"
    assert ("execute", directive) in driver.current.calls
    assert connection.date_format == "YYYY-MM-DD"


def test_date_format_requires_supporting_dialect(fake_connection):
    with pytest.raises(DialectFeatureError):
        fake_connection.set_date_format("YYYY-MM-DD")

    assert fake_connection.date_format is None


def test_commit_resets_counter(fake_connection, fake_driver):
    fake_connection.insert("users", {"id": "1"})

    fake_connection.commit()

    assert fake_connection.uncommitted_rows == 0
    assert fake_driver.current.calls[-1] == ("commit",)


def test_failed_commit_still_resets_counter(fake_connection, fake_driver):
    fake_connection.insert("users", {"id": "1"})
    fake_driver.current.commit_error = DriverError("deadlock", "40P01")

    with pytest.raises(DriverError):
        fake_connection.commit()

    assert fake_connection.uncommitted_rows == 0


def test_rollback_resets_counter(fake_connection):
    fake_connection.insert("users", {"id": "1"})

    fake_connection.rollback()

    assert fake_connection.uncommitted_rows == 0


def test_commit_if_reached(fake_connection, fake_driver):
    fake_driver.current.update_count = 2
    fake_connection.insert("users", {"id": "1"})

    assert not fake_connection.commit_if_reached(3)
    assert ("commit",) not in fake_driver.current.calls

    fake_connection.insert("users", {"id": "2"})

    assert fake_connection.commit_if_reached(3)
    assert fake_connection.uncommitted_rows == 0


def test_close_is_best_effort(fake_connection, fake_driver):
    """Failures while closing statements or the handle are swallowed."""
    fake_connection.prepare(FIND_USER)
    fake_connection.prepare(RENAME_USER)
    current = fake_driver.current
    current.statements[0].close_error = DriverError("boom")
    current.close_error = DriverError("boom")

    fake_connection.close()

    assert current.statements[1].closed
    assert current.closed
    assert not fake_connection.is_connected


def test_close_keeps_registrations(fake_connection):
    fake_connection.prepare(FIND_USER)

    fake_connection.close()

    assert fake_connection.prepared_statement_names() == ["find_user"]
    assert not fake_connection.get_prepared_statement("find_user").is_prepared


def test_remove_prepared_statement(fake_connection, fake_driver):
    fake_connection.prepare(FIND_USER)

    fake_connection.remove_prepared_statement("find_user")

    assert fake_driver.current.statements[0].closed
    with pytest.raises(UnknownStatementError):
        fake_connection.execute_query("find_user", {"id": "1"})


def test_adhoc_statements_record_last_sql(fake_connection, fake_driver):
    fake_connection.update("users", {"name": "x"}, {"id": "1"})

    assert fake_connection.last_sql == "UPDATE users SET name = 'x' WHERE id = 1"
    assert fake_driver.current.calls[-1] == ("execute", fake_connection.last_sql)


def test_select_closes_cursor(fake_connection, fake_driver):
    fake_driver.current.result_columns = ["a"]
    fake_driver.current.result_rows = [("1",)]

    result = fake_connection.select("t", ["a"], {"b": "null"})

    assert result.rows == [{"a": "1"}]
    assert fake_driver.current.calls[-1] == ("query", "SELECT a FROM t WHERE b IS null")
    assert fake_driver.current.cursors[-1].closed


def test_driver_error_keeps_native_code(fake_connection, fake_driver):
    fake_driver.current.query_error = DriverError("bad column", "42703")

    with pytest.raises(DriverError) as exc_info:
        fake_connection.select("t", ["nope"])

    assert exc_info.value.native_code == "42703"


def test_lock_for_update_counts_rows():
    driver = FakeDriver(Dialect.POSTGRESQL)
    connection = Connection(driver)
    connection.connect()
    driver.current.result_columns = ["id"]
    driver.current.result_rows = [(1,), (2,)]

    locked = connection.lock_for_update("t", {"owner": "me"})

    assert locked == 2
    assert connection.last_sql == "SELECT * FROM t WHERE owner = 'me' FOR UPDATE NOWAIT"


@pytest.mark.parametrize(
    "dialect,code",
    [(Dialect.ORACLE, 54), (Dialect.POSTGRESQL, "55P03"), (Dialect.MYSQL, 3572)],
)
def test_lock_conflict_raises_row_locked(dialect, code):
    driver = FakeDriver(dialect)
    connection = Connection(driver)
    connection.connect()
    driver.current.query_error = DriverError("resource busy", code)

    with pytest.raises(RowLockedError) as exc_info:
        connection.lock_for_update("t", {"id": "1"})

    assert exc_info.value.native_code == code


def test_other_lock_failures_stay_driver_errors():
    driver = FakeDriver(Dialect.ORACLE)
    connection = Connection(driver)
    connection.connect()
    driver.current.query_error = DriverError("table missing", 942)

    with pytest.raises(DriverError):
        connection.lock_for_update("t", {"id": "1"})


def test_operations_require_open_connection(fake_driver):
    connection = Connection(fake_driver)

    with pytest.raises(InvalidArgumentError):
        connection.insert("t", {"a": "1"})
    with pytest.raises(InvalidArgumentError):
        connection.prepare(FIND_USER)


def test_context_manager_closes(fake_driver):
    with Connection(fake_driver) as connection:
        assert connection.is_connected

    assert not connection.is_connected
    assert fake_driver.current.closed
