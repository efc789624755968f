"""
End-to-end walkthrough of hand-maintained secondary indexes.

Replays the classic customer scenario step by step (create, read by id, read
by first name, read by age range, update, update everyone, delete) against a
store, profiling each step and counting the store round trips it needed.

Usage:
    from kvindex.store.memory import InMemoryStore
    from kvindex.walkthrough import run_walkthrough

    results = run_walkthrough(store=InMemoryStore())
    print(results)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypedDict

from kvindex.coordinator import CrudCoordinator, QueryResult
from kvindex.domain.errors import NotFound
from kvindex.domain.models import CUSTOMER_SCHEMA, Customer
from kvindex.store.abstract import KeyValueStore
from kvindex.store.memory import InMemoryStore
from kvindex.utils.logging import get_logger
from kvindex.utils.profiler import profile_block

log = get_logger(__name__)

AGE_RANGE = (0, 65)


class StepResult(TypedDict, total=False):
    """
    Metrics recorded for one walkthrough step.
    """

    step: str
    description: str
    round_trips: int
    duration_ms: float
    cpu_ms: Optional[float]
    rss_delta_kb: Optional[float]
    records: int
    detail: str


class CountingStore:
    """
    Store proxy counting calls per method name.

    Only the data operations are counted; `ping` and `close` pass through.
    """

    _COUNTED = frozenset(
        {
            "set_mapping",
            "get_mapping",
            "delete_key",
            "sorted_set_add",
            "sorted_set_remove",
            "sorted_set_members",
            "sorted_set_range_by_score",
        }
    )

    def __init__(self, inner: KeyValueStore) -> None:
        self._inner = inner
        self.calls: Dict[str, int] = {}

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if name not in self._COUNTED:
            return attr

        def counted(*args: Any, **kwargs: Any) -> Any:
            self.calls[name] = self.calls.get(name, 0) + 1
            return attr(*args, **kwargs)

        return counted

    @property
    def total(self) -> int:
        return sum(self.calls.values())

    def reset(self) -> None:
        self.calls.clear()


def _round(value: float, decimals: int = 3) -> float:
    return round(value, decimals)


def _profiled_step(
    counter: CountingStore,
    name: str,
    description: str,
    action: Callable[[], Any],
) -> tuple:
    counter.reset()
    log.info(f"[STEP START] {name}", extra={"step": name})
    with profile_block(name) as stats:
        outcome = action()
    result = StepResult(
        step=name,
        description=description,
        round_trips=counter.total,
        duration_ms=_round(stats.duration_ms),
        cpu_ms=_round(stats.cpu_seconds * 1000.0) if stats.cpu_seconds is not None else None,
        rss_delta_kb=(
            _round(stats.rss_delta_bytes / 1024.0) if stats.rss_delta_bytes is not None else None
        ),
    )
    log.info(
        f"[STEP DONE] {name}",
        extra={"step": name, "round_trips": result["round_trips"], "calls": dict(counter.calls)},
    )
    return result, outcome


def run_walkthrough(
    store: Optional[KeyValueStore] = None,
    first_name: str = "Bob",
) -> List[StepResult]:
    """
    Run the customer scenario and return one result per step.

    Two customers are created: one inside the age range and one outside it.
    Bulk updates only touch customers created here, and the last step
    deletes both, so the scenario is safe to run against a populated store.
    Errors propagate; steps already run keep their effects.
    """
    counter = CountingStore(store if store is not None else InMemoryStore())
    customers = CrudCoordinator(counter, CUSTOMER_SCHEMA)
    bob = Customer(FirstName=first_name, LastName="Smith", Email="foo@bar.com", Age=35)
    elder = Customer(FirstName="Alice", LastName="Jones", Email="alice@jones.com", Age=70)
    results: List[StepResult] = []

    def step(name: str, description: str, action: Callable[[], Any]) -> Any:
        result, outcome = _profiled_step(counter, name, description, action)
        if isinstance(outcome, (list, QueryResult)):
            result["records"] = len(outcome)
        results.append(result)
        return outcome

    created = step(
        "create",
        "Write mapping, then one index entry per indexed field",
        lambda: [customers.create(bob), customers.create(elder)],
    )
    key = created[0]
    results[-1]["detail"] = ", ".join(created)

    step("read_by_id", "Fetch the mapping and decode it", lambda: [customers.read_by_id(key)])

    found = step(
        "read_by_field",
        f"FirstName == {first_name!r} via its value-set",
        lambda: customers.read_by_field("FirstName", first_name),
    )
    results[-1]["detail"] = f"includes created: {key in found.keys}"

    in_range = step(
        "read_by_range",
        f"Age in [{AGE_RANGE[0]}, {AGE_RANGE[1]}] via the score-ordered index",
        lambda: customers.read_by_range("Age", *AGE_RANGE),
    )
    results[-1]["detail"] = f"excludes Age 70: {created[1] not in in_range.keys}"

    step(
        "update",
        "Age + 1 and a new Email; only changed indexes are rewritten",
        lambda: [customers.update(key, _birthday_and_new_email)],
    )

    step(
        "update_many",
        "Age + 1 for every created customer",
        lambda: customers.update_many(created, _birthday),
    )
    results[-1]["detail"] = f"Age now {customers.read_by_id(key).age}"

    step(
        "delete",
        "Remove every index membership, then the mapping",
        lambda: [customers.delete(k) for k in created],
    )

    def verify() -> List[str]:
        leftover = [
            k for k in customers.read_by_field("FirstName", first_name).keys if k in created
        ]
        try:
            customers.read_by_id(key)
        except NotFound:
            return leftover
        return leftover + [key]

    leftover = step("verify", "Deleted customers are unreachable by id and by index", verify)
    results[-1]["detail"] = "clean" if not leftover else f"still reachable: {', '.join(leftover)}"
    return results


def _birthday(customer: Customer) -> Customer:
    return customer.model_copy(update={"age": customer.age + 1})


def _birthday_and_new_email(customer: Customer) -> Customer:
    return customer.model_copy(update={"age": customer.age + 1, "email": "bar@foo.com"})


def persist_results(results: List[StepResult], path: Path | str) -> Path:
    """Write walkthrough results as JSON and return the path written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "steps": results,
    }
    with target.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    log.info("Walkthrough results persisted", extra={"path": str(target)})
    return target


__all__ = ["CountingStore", "StepResult", "run_walkthrough", "persist_results"]
