"""Command line access to dbshim connections."""

from __future__ import annotations

import time
from typing import Dict, List, Optional, Tuple

import click
import pyarrow as pa

from ..config import Config, ConnectionConfig, load_config
from ..connection import Connection, QueryResult, open_connection
from ..errors import DbShimError
from ..statements import PreparedStatementTemplate
from ..utils.logging import setup_logging


class ResultPrinter:
    """Formats Arrow tables for CLI display."""

    def __init__(self, emit):
        self.emit = emit

    def display(self, result: QueryResult, elapsed_ms: float) -> None:
        table = result.to_arrow()
        rows = self._build_rows(table)
        headers = list(table.schema.names)
        lines = self._format_table(headers, rows)
        for line in lines:
            self.emit(line)
        summary = f"{table.num_rows} rows in {elapsed_ms:.2f} ms"
        self.emit(summary)

    def _build_rows(self, table: pa.Table) -> List[List[object]]:
        columns = []
        for index in range(table.num_columns):
            columns.append(table.column(index).to_pylist())
        rows: List[List[object]] = []
        for row_index in range(table.num_rows):
            row = []
            for column in columns:
                row.append(column[row_index])
            rows.append(row)
        return rows

    def _format_table(self, headers: List[str], rows: List[List[object]]) -> List[str]:
        widths = self._compute_widths(headers, rows)
        border = self._build_border(widths)
        lines: List[str] = []
        lines.append(border)
        lines.append(self._format_row(headers, widths))
        lines.append(border)
        for row in rows:
            string_values = self._stringify_row(row)
            lines.append(self._format_row(string_values, widths))
        lines.append(border)
        return lines

    def _compute_widths(self, headers: List[str], rows: List[List[object]]) -> List[int]:
        widths: List[int] = []
        for header in headers:
            widths.append(len(header))
        for row in rows:
            for index, value in enumerate(row):
                text = self._stringify_cell(value)
                if len(text) > widths[index]:
                    widths[index] = len(text)
        return widths

    def _build_border(self, widths: List[int]) -> str:
        parts: List[str] = ["+"]
        for width in widths:
            parts.append("-" * (width + 2))
            parts.append("+")
        return "".join(parts)

    def _format_row(self, values: List[str], widths: List[int]) -> str:
        parts: List[str] = ["|"]
        for value, width in zip(values, widths):
            parts.append(f" {value.ljust(width)} ")
            parts.append("|")
        return "".join(parts)

    def _stringify_row(self, row: List[object]) -> List[str]:
        string_values: List[str] = []
        for value in row:
            string_values.append(self._stringify_cell(value))
        return string_values

    def _stringify_cell(self, value: object) -> str:
        if value is None:
            return "NULL"
        return str(value)


class ShimSession:
    """Lazily opened connection shared by the subcommands of one invocation."""

    def __init__(self, config: Config, seed_demo: bool):
        self.config = config
        self.seed_demo = seed_demo
        self._connection: Optional[Connection] = None

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            self._connection = open_connection(self.config)
            if self.seed_demo:
                _seed_demo_data(self._connection)
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


def _load_config_bundle(config_path: Optional[str]) -> Tuple[Config, Optional[str]]:
    if config_path:
        config = load_config(config_path)
        return config, None
    config = _build_default_config()
    note = "Using in-memory DuckDB database with a demo_users table."
    return config, note


def _build_default_config() -> Config:
    connection = ConnectionConfig(
        name="duckdb_mem",
        driver="duckdb",
        params={"path": ":memory:", "read_only": False},
    )
    statements = [
        PreparedStatementTemplate.create(
            name="find_user",
            sql="SELECT id, name, age, city FROM demo_users WHERE name = ?",
            params=["name"],
        ),
        PreparedStatementTemplate.create(
            name="add_user",
            sql="INSERT INTO demo_users (age, city, id, name) VALUES (?, ?, ?, ?)",
        ),
    ]
    return Config(connection=connection, statements=statements)


def _seed_demo_data(connection: Connection) -> None:
    connection.execute_sql(
        """
        CREATE TABLE IF NOT EXISTS demo_users (
            id INTEGER,
            name VARCHAR,
            age INTEGER,
            city VARCHAR
        )
        """
    )
    connection.delete("demo_users")
    users = [
        {"id": "1", "name": "Alice", "age": "30", "city": "New York"},
        {"id": "2", "name": "Bob", "age": "34", "city": "Boston"},
        {"id": "3", "name": "Carlos", "age": "28", "city": "Austin"},
        {"id": "4", "name": "Diana", "age": "41", "city": "Chicago"},
        {"id": "5", "name": "Eve", "age": "25", "city": "Seattle"},
    ]
    for user in users:
        connection.insert("demo_users", user)
    connection.commit()


def _parse_pairs(ctx, param, values: Tuple[str, ...]) -> Dict[str, str]:
    """Click callback turning repeated name=value options into a dict."""
    pairs: Dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got {item!r}")
        pairs[name.strip()] = value
    return pairs


def _session(ctx: click.Context) -> ShimSession:
    return ctx.find_object(ShimSession)


def _report_error(exc: DbShimError) -> None:
    click.echo(f"error: {exc}", err=True)


where_option = click.option(
    "-w",
    "--where",
    "where_cols",
    multiple=True,
    callback=_parse_pairs,
    help="WHERE qualifier as name=value; repeatable.",
)
set_option = click.option(
    "-s",
    "--set",
    "set_cols",
    multiple=True,
    callback=_parse_pairs,
    help="Column value as name=value; repeatable.",
)
raw_option = click.option(
    "--raw",
    is_flag=True,
    help="Values are SQL literals already; do not quote them.",
)


@click.group()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to YAML config file. Defaults to an in-memory DuckDB demo.",
)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """Entry point for the dbshim CLI."""
    config, note = _load_config_bundle(config_path)
    level = log_level or config.logging.level
    setup_logging(level, config.logging.structured, config.logging.log_file)
    if note:
        click.echo(note)
    session = ShimSession(config, seed_demo=note is not None)
    ctx.obj = session
    ctx.call_on_close(session.close)


@cli.command()
@click.argument("table")
@click.option(
    "-s",
    "--column",
    "columns",
    multiple=True,
    required=True,
    help="Column to return; repeatable.",
)
@where_option
@raw_option
@click.pass_context
def select(ctx, table: str, columns, where_cols: Dict[str, str], raw: bool) -> None:
    """Select COLUMNs from TABLE."""
    connection = _session(ctx).connection
    printer = ResultPrinter(click.echo)
    try:
        start = time.time()
        result = connection.select(table, columns, where_cols, encode=not raw)
        elapsed = (time.time() - start) * 1000
    except DbShimError as exc:
        _report_error(exc)
        ctx.exit(1)
    printer.display(result, elapsed)


@cli.command()
@click.argument("table")
@set_option
@raw_option
@click.pass_context
def insert(ctx, table: str, set_cols: Dict[str, str], raw: bool) -> None:
    """Insert one row into TABLE."""
    _run_update(ctx, lambda conn: conn.insert(table, set_cols, encode=not raw))


@cli.command()
@click.argument("table")
@set_option
@where_option
@raw_option
@click.pass_context
def update(ctx, table: str, set_cols, where_cols, raw: bool) -> None:
    """Update the qualified rows of TABLE."""
    _run_update(
        ctx, lambda conn: conn.update(table, set_cols, where_cols, encode=not raw)
    )


@cli.command()
@click.argument("table")
@where_option
@raw_option
@click.pass_context
def delete(ctx, table: str, where_cols, raw: bool) -> None:
    """Delete the qualified rows of TABLE (every row without --where)."""
    _run_update(ctx, lambda conn: conn.delete(table, where_cols, encode=not raw))


@cli.command()
@click.argument("table")
@where_option
@raw_option
@click.pass_context
def lock(ctx, table: str, where_cols, raw: bool) -> None:
    """Lock the qualified rows of TABLE for update, then release them."""
    connection = _session(ctx).connection
    try:
        count = connection.lock_for_update(table, where_cols, encode=not raw)
        connection.rollback()
    except DbShimError as exc:
        _report_error(exc)
        ctx.exit(1)
    click.echo(f"{count} rows locked")


@cli.command()
@click.argument("name")
@click.option(
    "-p",
    "--param",
    "params",
    multiple=True,
    callback=_parse_pairs,
    help="Parameter value as name=value; repeatable.",
)
@click.pass_context
def run(ctx, name: str, params: Dict[str, str]) -> None:
    """Execute the configured prepared statement NAME."""
    connection = _session(ctx).connection
    printer = ResultPrinter(click.echo)
    try:
        statement = connection.get_prepared_statement(name)
        start = time.time()
        if statement.is_query:
            result = connection.execute_query(name, params)
            elapsed = (time.time() - start) * 1000
            printer.display(result, elapsed)
            return
        count = connection.execute(name, params)
        connection.commit()
    except DbShimError as exc:
        _report_error(exc)
        ctx.exit(1)
    click.echo(f"{count} rows affected")


@cli.command()
@click.pass_context
def statements(ctx) -> None:
    """List the configured prepared statements."""
    templates = _session(ctx).config.statements
    if not templates:
        click.echo("No prepared statements configured.")
        return
    for template in templates:
        params = ", ".join(template.params) if template.params else "sorted keys"
        click.echo(f"{template.name} [{template.return_type.value}] ({params})")
        click.echo(f"    {template.sql}")


def _run_update(ctx: click.Context, operation) -> None:
    connection = _session(ctx).connection
    try:
        count = operation(connection)
        connection.commit()
    except DbShimError as exc:
        _report_error(exc)
        ctx.exit(1)
    click.echo(f"{count} rows affected")
