from __future__ import annotations

import json
from contextlib import contextmanager

import pytest
from typer.testing import CliRunner

from kvindex import main as cli
from kvindex.config import Settings
from kvindex.store.memory import InMemoryStore

runner = CliRunner()

BOB_ARGS = ["--set", "FirstName=Bob", "--set", "LastName=Smith", "--set", "Email=foo@bar.com"]


@pytest.fixture()
def shared_store(monkeypatch: pytest.MonkeyPatch, test_settings: Settings) -> InMemoryStore:
    """One in-memory store shared by every CLI invocation of a test."""
    store = InMemoryStore()
    postgres_settings = test_settings.model_copy(update={"store_backend": "postgres"})

    @contextmanager
    def _session(settings=None, dsn_override=None):
        yield store

    monkeypatch.setattr(cli, "get_settings", lambda: postgres_settings)
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli, "store_session", _session)
    return store


def _create(age: int = 35, first: str = "Bob") -> str:
    args = ["create", "--set", f"FirstName={first}", *BOB_ARGS[2:], "--set", f"Age={age}"]
    result = runner.invoke(cli.app, args)
    assert result.exit_code == 0, result.output
    return result.stdout.strip()


def test_create_get_find_range_delete(shared_store: InMemoryStore) -> None:
    key = _create()
    assert key.startswith("Customer:")

    got = runner.invoke(cli.app, ["get", key])
    assert got.exit_code == 0
    assert json.loads(got.stdout) == {
        "key": key,
        "record": {"FirstName": "Bob", "LastName": "Smith", "Email": "foo@bar.com", "Age": 35},
    }

    found = runner.invoke(cli.app, ["find", "FirstName", "Bob", "--json"])
    assert found.exit_code == 0
    payload = json.loads(found.stdout)
    assert [r["key"] for r in payload["records"]] == [key]
    assert payload["stale_references"] == []

    in_range = runner.invoke(cli.app, ["range", "Age", "0", "65", "--json"])
    assert [r["key"] for r in json.loads(in_range.stdout)["records"]] == [key]

    deleted = runner.invoke(cli.app, ["delete", key])
    assert deleted.stdout.strip() == "deleted"
    again = runner.invoke(cli.app, ["delete", key])
    assert again.stdout.strip() == "absent"
    assert shared_store.keys() == []


def test_update_rewrites_fields_and_indexes(shared_store: InMemoryStore) -> None:
    key = _create()

    result = runner.invoke(cli.app, ["update", key, "--set", "Age=36", "--set", "FirstName=Rob"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["record"]["Age"] == 36
    bobs = runner.invoke(cli.app, ["find", "FirstName", "Bob", "--json"])
    assert json.loads(bobs.stdout)["records"] == []
    robs = runner.invoke(cli.app, ["find", "FirstName", "Rob", "--json"])
    assert [r["key"] for r in json.loads(robs.stdout)["records"]] == [key]


def test_missing_key_exits_with_not_found(shared_store: InMemoryStore) -> None:
    result = runner.invoke(cli.app, ["get", "Customer:missing"])

    assert result.exit_code == cli.EXIT_NOT_FOUND


def test_invalid_input_exits_with_error(shared_store: InMemoryStore) -> None:
    missing_age = runner.invoke(cli.app, ["create", *BOB_ARGS])
    assert missing_age.exit_code == cli.EXIT_ERROR

    bad_age = runner.invoke(cli.app, ["create", *BOB_ARGS, "--set", "Age=old"])
    assert bad_age.exit_code == cli.EXIT_ERROR

    wrong_kind = runner.invoke(cli.app, ["range", "FirstName", "0", "1"])
    assert wrong_kind.exit_code == cli.EXIT_ERROR
    assert shared_store.keys() == []


def test_prune_and_reindex(shared_store: InMemoryStore) -> None:
    stale = _create()
    live = _create(age=40)
    shared_store.delete_key(stale)

    pruned = runner.invoke(cli.app, ["prune", "FirstName", "Bob"])
    assert pruned.stdout.strip() == "pruned 1 stale reference(s)"

    reindexed = runner.invoke(cli.app, ["reindex", live])
    assert reindexed.exit_code == 0
    assert reindexed.stdout.strip() == f"reindexed {live}"


def test_walkthrough_in_memory(shared_store: InMemoryStore, tmp_path) -> None:
    output = tmp_path / "walkthrough.json"

    result = runner.invoke(cli.app, ["walkthrough", "--memory", "--output", str(output)])

    assert result.exit_code == 0, result.output
    assert "Secondary Index Walkthrough" in result.stdout
    assert output.exists()


def test_info_shows_backend(shared_store: InMemoryStore) -> None:
    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    assert "store=postgres" in result.stdout
    assert "types=Customer" in result.stdout


def test_crud_commands_refuse_the_memory_backend(
    shared_store: InMemoryStore, monkeypatch: pytest.MonkeyPatch, test_settings: Settings
) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: test_settings)

    result = runner.invoke(cli.app, ["create", *BOB_ARGS, "--set", "Age=35"])

    assert result.exit_code == cli.EXIT_ERROR
    assert shared_store.keys() == []
