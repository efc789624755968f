from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, List, Optional

import typer

from kvindex.codec import decode_value
from kvindex.config import get_settings
from kvindex.coordinator import CrudCoordinator, QueryResult
from kvindex.domain.errors import KvIndexError, NotFound
from kvindex.domain.models import registered_schemas
from kvindex.domain.schema import RecordSchema
from kvindex.infrastructure.store_factory import store_session
from kvindex.reporter import print_records, print_walkthrough
from kvindex.store.memory import InMemoryStore
from kvindex.utils.logging import configure_logging
from kvindex.walkthrough import persist_results, run_walkthrough

app = typer.Typer(help="kvindex CLI: records and hand-maintained secondary indexes.")

EXIT_ERROR = 1
EXIT_NOT_FOUND = 2

TYPE_OPTION = typer.Option("Customer", "--type", "-t", help="Record type to operate on.")
SET_OPTION = typer.Option(
    None, "--set", "-s", help="Field assignment as Field=value; repeat for each field."
)
JSON_OPTION = typer.Option(False, "--json", help="Print JSON instead of a table.")


def _schema(type_name: str) -> RecordSchema:
    schemas = registered_schemas()
    if type_name not in schemas:
        raise typer.BadParameter(
            f"Unknown record type '{type_name}'. Available: {', '.join(sorted(schemas))}"
        )
    return schemas[type_name]


def _parse_assignments(pairs: Optional[List[str]]) -> Dict[str, str]:
    assignments: Dict[str, str] = {}
    for pair in pairs or []:
        field, sep, value = pair.partition("=")
        if not sep or not field:
            raise typer.BadParameter(f"Expected Field=value, got {pair!r}")
        assignments[field.strip()] = value
    return assignments


@contextmanager
def _coordinator(type_name: str) -> Generator[CrudCoordinator, None, None]:
    """Open the configured store for one command and map errors to exit codes."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    schema = _schema(type_name)
    if settings.store_backend == "memory":
        # Each command would open, and throw away, its own empty store.
        typer.echo(
            "Error: STORE_BACKEND=memory does not persist between commands; "
            "use the postgres backend, or `kvindex walkthrough --memory`.",
            err=True,
        )
        raise typer.Exit(EXIT_ERROR)
    try:
        with store_session(settings) as store:
            yield CrudCoordinator(store, schema)
    except NotFound as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(EXIT_NOT_FOUND)
    except (KvIndexError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_ERROR)


def _record_json(key: str, record) -> str:
    return json.dumps({"key": key, "record": record.model_dump(by_alias=True)})


def _emit(result: QueryResult, schema: RecordSchema, as_json: bool, title: str) -> None:
    if as_json:
        typer.echo(
            json.dumps(
                {
                    "records": [
                        {"key": key, "record": record.model_dump(by_alias=True)}
                        for key, record in result.items()
                    ],
                    "stale_references": [i.primary_key for i in result.inconsistencies],
                }
            )
        )
        return
    columns = [spec.name for spec in schema]
    rows = (
        (key, *(getattr(record, spec.attribute) for spec in schema))
        for key, record in result.items()
    )
    print_records(rows, columns, title)
    if result.inconsistencies:
        typer.echo(f"Skipped {len(result.inconsistencies)} stale index reference(s).", err=True)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"store={settings.store_backend} | "
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.pool_min_size},{settings.pool_max_size}) "
        f"types={', '.join(sorted(registered_schemas()))}"
    )


@app.command()
def create(
    assignments: Optional[List[str]] = SET_OPTION,
    record_type: str = TYPE_OPTION,
) -> None:
    """
    Create a record from --set Field=value pairs and print its key.
    """
    with _coordinator(record_type) as coordinator:
        record = coordinator.codec.decode(_parse_assignments(assignments))
        typer.echo(coordinator.create(record))


@app.command()
def get(key: str, record_type: str = TYPE_OPTION) -> None:
    """
    Print the record stored under KEY as JSON.
    """
    with _coordinator(record_type) as coordinator:
        typer.echo(_record_json(key, coordinator.read_by_id(key)))


@app.command()
def find(
    field: str,
    value: str,
    record_type: str = TYPE_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """
    List records whose string FIELD equals VALUE.
    """
    with _coordinator(record_type) as coordinator:
        result = coordinator.read_by_field(field, value)
        _emit(result, coordinator.schema, as_json, f"{field} == {value!r}")


@app.command(name="range")
def range_(
    field: str,
    low: float,
    high: float,
    record_type: str = TYPE_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """
    List records whose numeric FIELD lies in [LOW, HIGH], ascending.
    """
    with _coordinator(record_type) as coordinator:
        result = coordinator.read_by_range(field, low, high)
        _emit(result, coordinator.schema, as_json, f"{low} <= {field} <= {high}")


@app.command()
def update(
    key: str,
    assignments: Optional[List[str]] = SET_OPTION,
    record_type: str = TYPE_OPTION,
) -> None:
    """
    Change the given fields of the record under KEY.
    """
    with _coordinator(record_type) as coordinator:
        schema = coordinator.schema
        changes = {}
        for field, raw in _parse_assignments(assignments).items():
            spec = schema.field(field)
            changes[spec.attribute] = decode_value(schema, spec, raw)
        updated = coordinator.update(
            key, lambda record: schema.model.model_validate({**record.model_dump(), **changes})
        )
        typer.echo(_record_json(key, updated))


@app.command()
def delete(key: str, record_type: str = TYPE_OPTION) -> None:
    """
    Delete the record under KEY and its index entries (no-op when absent).
    """
    with _coordinator(record_type) as coordinator:
        existed = coordinator.delete(key)
        typer.echo("deleted" if existed else "absent")


@app.command()
def reindex(key: str, record_type: str = TYPE_OPTION) -> None:
    """
    Rewrite every index entry of the record under KEY from its stored fields.
    """
    with _coordinator(record_type) as coordinator:
        coordinator.reindex(key)
        typer.echo(f"reindexed {key}")


@app.command()
def prune(field: str, value: str, record_type: str = TYPE_OPTION) -> None:
    """
    Remove index references under FIELD=VALUE whose record no longer exists.
    """
    with _coordinator(record_type) as coordinator:
        removed = coordinator.prune_stale(field, value)
        typer.echo(f"pruned {len(removed)} stale reference(s)")


@app.command()
def walkthrough(
    memory: bool = typer.Option(
        False, "--memory", help="Run against a throwaway in-memory store."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Also write step results as JSON to this path."
    ),
) -> None:
    """
    Run the create/read/update/delete scenario and show its cost per step.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        if memory:
            results = run_walkthrough(InMemoryStore())
        else:
            with store_session(settings) as store:
                results = run_walkthrough(store)
    except KvIndexError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_ERROR)
    print_walkthrough(results)
    if output is not None:
        persist_results(results, output)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
