from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine

from userdirectory.database import Database, resolve_database_url
from userdirectory.errors import ConstraintViolation, StoreConnectionError, StoreError, UserNotFound


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(f"sqlite:///{tmp_path / 'users.sqlite3'}")
    db.initialize()
    return db


def test_create_then_list_returns_single_matching_row(database: Database) -> None:
    database.create_user("John Doe", "john@example.com")

    users = database.list_users()
    assert len(users) == 1
    assert users[0].name == "John Doe"
    assert users[0].email == "john@example.com"
    assert users[0].id >= 1


def test_list_users_is_empty_for_new_table(database: Database) -> None:
    assert database.list_users() == []


def test_duplicate_email_is_rejected(database: Database) -> None:
    database.create_user("First", "dup@example.com")
    with pytest.raises(ConstraintViolation):
        database.create_user("Second", "dup@example.com")

    matching = [user for user in database.list_users() if user.email == "dup@example.com"]
    assert len(matching) == 1
    assert matching[0].name == "First"


def test_update_to_existing_email_is_rejected(database: Database) -> None:
    database.create_user("Alice", "alice@example.com")
    database.create_user("Bob", "bob@example.com")
    bob = database.list_users()[1]

    with pytest.raises(ConstraintViolation):
        database.update_user(bob.id, "Bob", "alice@example.com")

    assert database.get_user(bob.id).email == "bob@example.com"


def test_get_user_raises_for_unknown_id(database: Database) -> None:
    with pytest.raises(UserNotFound) as excinfo:
        database.get_user(42)
    assert excinfo.value.user_id == 42


def test_update_reports_affected_rows(database: Database) -> None:
    database.create_user("John Doe", "john@example.com")
    user = database.list_users()[0]

    assert database.update_user(user.id, "Jane Doe", "john@example.com") == 1
    updated = database.get_user(user.id)
    assert updated.id == user.id
    assert updated.name == "Jane Doe"

    assert database.update_user(user.id + 100, "Nobody", "nobody@example.com") == 0


def test_delete_removes_row(database: Database) -> None:
    database.create_user("John Doe", "john@example.com")
    user = database.list_users()[0]

    assert database.delete_user(user.id) == 1
    with pytest.raises(UserNotFound):
        database.get_user(user.id)
    assert database.delete_user(user.id) == 0


def test_missing_fields_are_rejected_by_the_store(database: Database) -> None:
    with pytest.raises(ConstraintViolation, match="NOT NULL"):
        database.create_user("No Email", None)
    assert database.list_users() == []


def test_values_longer_than_column_bounds_are_rejected(database: Database) -> None:
    with pytest.raises(ConstraintViolation):
        database.create_user("x" * 101, "long@example.com")
    with pytest.raises(ConstraintViolation):
        database.create_user("Long Email", "a" * 95 + "@example.com")

    database.create_user("x" * 100, "fits@example.com")
    assert database.list_users()[0].name == "x" * 100


def test_values_are_bound_not_interpolated(database: Database) -> None:
    hostile = "Robert'); DROP TABLE users;--"
    database.create_user(hostile, "bobby@example.com")

    users = database.list_users()
    assert [user.name for user in users] == [hostile]


def test_initialize_is_idempotent(database: Database) -> None:
    database.create_user("John Doe", "john@example.com")
    database.initialize()
    assert len(database.list_users()) == 1


def test_ids_are_not_reused_after_delete(database: Database) -> None:
    database.create_user("One", "one@example.com")
    first = database.list_users()[0]
    database.delete_user(first.id)

    database.create_user("Two", "two@example.com")
    second = database.list_users()[0]
    assert second.id > first.id


def test_unreachable_store_raises_connection_error(tmp_path: Path) -> None:
    missing = tmp_path / "missing" / "users.sqlite3"
    engine = create_engine(f"sqlite:///{missing}")
    database = Database(str(engine.url), engine=engine)

    with pytest.raises(StoreConnectionError):
        database.ping()
    with pytest.raises(StoreConnectionError):
        database.list_users()


def test_sqlite_parent_directory_is_created(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "dir" / "users.sqlite3"
    database = Database(f"sqlite:///{target}")
    database.initialize()
    assert target.exists()


def test_resolve_database_url_prefers_explicit_value() -> None:
    assert resolve_database_url("postgresql://db/users") == "postgresql://db/users"
    default = resolve_database_url(None)
    assert default.startswith("sqlite:///")
    assert default.endswith("users.sqlite3")


def test_unsupported_dialect_is_reported(tmp_path: Path) -> None:
    database = Database(f"sqlite:///{tmp_path / 'users.sqlite3'}")
    database.engine.dialect.name = "oracle"

    with pytest.raises(StoreError, match="Unsupported database dialect: oracle"):
        database.initialize()
