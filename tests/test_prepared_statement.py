"""Tests for prepared statements and templates."""

import pytest

from dbshim.errors import InvalidArgumentError, ParameterCountMismatchError
from dbshim.statements import (
    PreparedStatement,
    PreparedStatementTemplate,
    ReturnType,
    StatementKind,
    statement_kind,
)


def _bindings(connection):
    bindings = []
    for call in connection.calls:
        if call[0] == "bind":
            bindings.append((call[2], call[3]))
    return bindings


def test_template_parameter_count_must_match():
    """An explicit order must name exactly one column per placeholder."""
    template = PreparedStatementTemplate.create(
        "bad", "SELECT a FROM t WHERE a = ? AND b = ?", params=["a"]
    )

    with pytest.raises(ParameterCountMismatchError) as exc_info:
        PreparedStatement.from_template(template)

    assert exc_info.value.expected == 2
    assert exc_info.value.found == 1


def test_template_ignores_placeholders_in_literals():
    template = PreparedStatementTemplate.create(
        "ok", "SELECT a FROM t WHERE a = ? AND b = '?'", params=["a"]
    )

    statement = PreparedStatement.from_template(template)

    assert statement.num_parameters == 1


def test_template_create_parses_return_type():
    template = PreparedStatementTemplate.create("x", "SELECT 1", return_type="xml")

    assert template.return_type is ReturnType.XML
    assert template.params is None


def test_template_requires_name_and_sql():
    with pytest.raises(InvalidArgumentError):
        PreparedStatementTemplate(name="", sql="SELECT 1")
    with pytest.raises(InvalidArgumentError):
        PreparedStatementTemplate(name="x", sql="")


@pytest.mark.parametrize(
    "sql,kind",
    [
        ("SELECT 1", StatementKind.QUERY),
        ("  with x as (select 1) select * from x", StatementKind.QUERY),
        ("(SELECT 1)", StatementKind.QUERY),
        ("INSERT INTO t VALUES (1)", StatementKind.UPDATE),
        ("update t set a = 1", StatementKind.UPDATE),
        ("DELETE FROM t", StatementKind.UPDATE),
    ],
)
def test_statement_kind(sql, kind):
    assert statement_kind(sql) is kind


def test_bind_uses_explicit_order(driver_connection):
    """Declared parameters decide positions, not the map's key order."""
    statement = PreparedStatement(
        "find", "SELECT * FROM t WHERE z = ? AND a = ?", param_columns=["z", "a"]
    )
    statement.prepare(driver_connection)

    statement.bind_and_run({"a": "first", "z": "last"})

    assert _bindings(driver_connection) == [(1, "last"), (2, "first")]


def test_bind_uses_sorted_order_without_declared_parameters(driver_connection):
    """Insert statements bind values in the same sorted order as their SQL."""
    statement = PreparedStatement.for_insert(
        "add", "t", {"name": "?", "id": "?", "kind": "fixed"}
    )
    statement.prepare(driver_connection)

    assert statement.sql == "INSERT INTO t (id,kind,name) VALUES (?,'fixed',?)"

    statement.bind_and_run({"name": "Zed", "id": "9"})

    assert _bindings(driver_connection) == [(1, "9"), (2, "Zed")]
    assert driver_connection.calls[-1] == ("execute_update", statement.sql)


def test_bind_count_mismatch_makes_no_driver_call(driver_connection):
    statement = PreparedStatement("find", "SELECT * FROM t WHERE a = ?", ["a"])
    statement.prepare(driver_connection)
    calls_before = list(driver_connection.calls)

    with pytest.raises(ParameterCountMismatchError):
        statement.bind_and_run({"a": "1", "b": "2"})

    assert driver_connection.calls == calls_before


def test_bind_missing_declared_key(driver_connection):
    statement = PreparedStatement("find", "SELECT * FROM t WHERE a = ?", ["a"])
    statement.prepare(driver_connection)

    with pytest.raises(InvalidArgumentError):
        statement.bind_and_run({"b": "1"})

    assert _bindings(driver_connection) == []


def test_bind_converts_values_to_strings(driver_connection):
    statement = PreparedStatement("find", "SELECT * FROM t WHERE a = ? AND b = ?", ["a", "b"])
    statement.prepare(driver_connection)

    statement.bind_and_run({"a": 5, "b": None})

    assert _bindings(driver_connection) == [(1, "5"), (2, None)]


def test_query_returns_cursor(driver_connection):
    driver_connection.result_columns = ["a"]
    driver_connection.result_rows = [("x",)]
    statement = PreparedStatement.for_select("find", "t", ["a"], ["b"])
    statement.prepare(driver_connection)

    cursor = statement.bind_and_run({"b": "1"})

    assert statement.sql == "SELECT a FROM t WHERE b = ?"
    assert cursor.next() == ("x",)


def test_for_delete_declares_sorted_where_columns():
    statement = PreparedStatement.for_delete("purge", "t", ["b", "a"])

    assert statement.sql == "DELETE FROM t WHERE a = ? AND b = ?"
    assert statement.param_columns == ["a", "b"]


def test_run_before_prepare_raises():
    statement = PreparedStatement("find", "SELECT * FROM t WHERE a = ?", ["a"])

    with pytest.raises(InvalidArgumentError):
        statement.bind_and_run({"a": "1"})


def test_prepare_closes_previous_handle(driver_connection):
    statement = PreparedStatement("find", "SELECT 1")
    statement.prepare(driver_connection)
    first = driver_connection.statements[0]

    statement.prepare(driver_connection)

    assert first.closed
    assert not driver_connection.statements[1].closed


def test_close_twice_is_noop(driver_connection):
    statement = PreparedStatement("find", "SELECT 1")
    statement.prepare(driver_connection)

    statement.close()
    statement.close()

    assert not statement.is_prepared
    assert driver_connection.statements[0].closed
