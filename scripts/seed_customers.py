"""
Customer seeding script for kvindex.

Generates deterministic pseudo-random customers, optionally writes them to a
CSV file, and loads them through the CRUD coordinator so every index entry
is written the same way an application would write it.
"""

from __future__ import annotations

import csv
import random
import sys
import time
from pathlib import Path
from typing import List

import typer

from kvindex.coordinator import CrudCoordinator
from kvindex.domain.models import CUSTOMER_SCHEMA, Customer
from kvindex.infrastructure.store_factory import store_session
from kvindex.store.abstract import KeyValueStore

app = typer.Typer(help="Generate synthetic customers and load them through the coordinator.")

FIRST_NAMES = ["Bob", "Alice", "Carol", "Dave", "Erin", "Frank", "Grace", "Heidi"]
LAST_NAMES = ["Smith", "Jones", "Brown", "Taylor", "Wilson", "Evans"]
DOMAINS = ["example.com", "mail.test", "bar.com"]


def _generate_customers(rows: int, seed: int) -> List[Customer]:
    rng = random.Random(seed)
    customers: List[Customer] = []
    for i in range(rows):
        first = rng.choice(FIRST_NAMES)
        last = rng.choice(LAST_NAMES)
        customers.append(
            Customer(
                FirstName=first,
                LastName=last,
                Email=f"{first.lower()}.{last.lower()}{i}@{rng.choice(DOMAINS)}",
                Age=rng.randint(18, 90),
            )
        )
    return customers


def _write_csv(csv_path: Path, customers: List[Customer]) -> None:
    columns = [spec.name for spec in CUSTOMER_SCHEMA]
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(columns)
        for customer in customers:
            dumped = customer.model_dump(by_alias=True)
            writer.writerow([dumped[column] for column in columns])


def _load(store: KeyValueStore, customers: List[Customer]) -> List[str]:
    coordinator = CrudCoordinator(store, CUSTOMER_SCHEMA)
    return [coordinator.create(customer) for customer in customers]


@app.command()
def main(
    rows: int = typer.Option(
        100,
        "--rows",
        "-r",
        help="Number of customers to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate (and optionally write CSV); skip loading into the store.",
    ),
) -> None:
    """
    Generate synthetic customers and optionally load them into the configured store.
    """
    start = time.perf_counter()
    typer.echo(f"Generating {rows:,} customers (seed={seed})")
    customers = _generate_customers(rows, seed)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        _write_csv(output, customers)
        typer.echo(f"Wrote {output}")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    with store_session() as store:
        keys = _load(store, customers)
    load_duration = time.perf_counter() - load_start
    total_duration = time.perf_counter() - start
    typer.echo(
        f"Loaded {len(keys):,} customers in {load_duration:.2f}s. "
        f"Total time {total_duration:.2f}s."
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
