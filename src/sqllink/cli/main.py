"""Command line access to linked tables."""
import pathlib
from typing import Optional

import typer
from rich.table import Table
from typing_extensions import Annotated

from sqllink.common.errors import LinkError
from sqllink.common.logger import configure_logging
from sqllink.common.settings import settings
from sqllink.configs.manager import ConfigManager
from sqllink.link.models import LinkDefinition
from sqllink.link.session import SessionPool
from sqllink.link.table import LinkedTable

from .console import console, print_error, print_link_error, print_success

app = typer.Typer(
    name="sqllink",
    help="Inspect and query tables linked from remote databases.",
    no_args_is_help=True,
    add_completion=False,
)

ConfigOption = Annotated[Optional[pathlib.Path], typer.Option("--config", help="Path to links config YAML")]
UrlOption = Annotated[Optional[str], typer.Option("--url", help="SQLAlchemy URL of the remote database")]
TableOption = Annotated[Optional[str], typer.Option("--table", help="Remote table name or parenthesized query")]
SchemaOption = Annotated[Optional[str], typer.Option("--schema", help="Remote schema")]
LinkArgument = Annotated[Optional[str], typer.Argument(help="Link name from the config file")]


@app.callback()
def global_callback(
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Environment name (loads .env.<name>).")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log remote statements")] = False,
):
    """
    sqllink CLI Entry Point.
    """
    if env:
        settings.configure_env(env)
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_json)


def _resolve_definition(
    name: Optional[str],
    config: Optional[pathlib.Path],
    url: Optional[str],
    table: Optional[str],
    schema: Optional[str],
) -> tuple:
    if url and table:
        local_name = name or ("QUERY" if table.startswith("(") else table.upper())
        return local_name, "PUBLIC", LinkDefinition(
            url=url, remote_table=table, remote_schema=schema,
        )
    if not name:
        raise typer.BadParameter("Pass a link name, or both --url and --table")
    link = ConfigManager().get_link(name, config)
    return link.name, link.schema_name, link.to_definition()


def _open(name, config, url, table, schema) -> tuple:
    try:
        local_name, local_schema, definition = _resolve_definition(name, config, url, table, schema)
    except (FileNotFoundError, KeyError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(code=1)
    pool = SessionPool()
    try:
        return LinkedTable(local_schema, 0, local_name, definition, pool), pool
    except LinkError as e:
        print_link_error(e)
        pool.close()
        raise typer.Exit(code=1)


@app.command()
def inspect(
    name: LinkArgument = None,
    config: ConfigOption = None,
    url: UrlOption = None,
    table: TableOption = None,
    schema: SchemaOption = None,
):
    """
    Show the columns and indexes of a linked table.
    """
    linked, pool = _open(name, config, url, table, schema)
    try:
        columns = Table(title=f"{linked.name} -> {linked.qualified_name}")
        columns.add_column("#", justify="right")
        columns.add_column("Column")
        columns.add_column("Remote name")
        columns.add_column("Type")
        columns.add_column("Nullable")
        for column in linked.columns:
            columns.add_row(
                str(column.ordinal),
                column.name,
                column.remote_name,
                str(column.type),
                "yes" if column.nullable else "no",
            )
        console.print(columns)

        indexes = Table(title="Indexes")
        indexes.add_column("Name")
        indexes.add_column("Kind")
        indexes.add_column("Columns")
        for index in linked.get_indexes():
            indexes.add_row(index.name or "-", index.kind.value, ", ".join(index.index.column_names))
        console.print(indexes)
    finally:
        linked.close()
        pool.close()


@app.command()
def ddl(
    name: LinkArgument = None,
    config: ConfigOption = None,
    url: UrlOption = None,
    table: TableOption = None,
    schema: SchemaOption = None,
):
    """
    Print the CREATE and DROP statements of a linked table.
    """
    linked, pool = _open(name, config, url, table, schema)
    try:
        console.print(linked.get_create_sql(), highlight=False, markup=False)
        console.print(linked.get_drop_sql(), highlight=False, markup=False)
    finally:
        linked.close()
        pool.close()


@app.command()
def count(
    name: LinkArgument = None,
    config: ConfigOption = None,
    url: UrlOption = None,
    table: TableOption = None,
    schema: SchemaOption = None,
):
    """
    Count the rows of a linked table on the remote side.
    """
    linked, pool = _open(name, config, url, table, schema)
    try:
        rows = linked.get_row_count()
        print_success(f"{linked.qualified_name}: {rows} rows")
    except LinkError as e:
        print_link_error(e)
        raise typer.Exit(code=1)
    finally:
        linked.close()
        pool.close()


if __name__ == "__main__":
    app()
