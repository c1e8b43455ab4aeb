"""SQLAlchemy-backed persistence for users.

Statements are plain SQL text executed through SQLAlchemy with bound
parameters; caller-supplied values never end up in the statement text.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from sqlalchemy import create_engine, exc, text
from sqlalchemy.engine import Connection, Engine, make_url

from .errors import ConstraintViolation, StoreConnectionError, StoreError, UserNotFound
from .models import User

logger = logging.getLogger("userdirectory.database")

_ID_COLUMNS = {
    "sqlite": "id INTEGER PRIMARY KEY AUTOINCREMENT",
    "postgresql": "id SERIAL PRIMARY KEY",
    "mysql": "id INTEGER AUTO_INCREMENT PRIMARY KEY",
    "mariadb": "id INTEGER AUTO_INCREMENT PRIMARY KEY",
}

_CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    {id_column},
    name VARCHAR(100) NOT NULL CHECK (LENGTH(name) <= 100),
    email VARCHAR(100) NOT NULL UNIQUE CHECK (LENGTH(email) <= 100)
)
"""

_INSERT_USER = text("INSERT INTO users (name, email) VALUES (:name, :email)")
_SELECT_USERS = text("SELECT id, name, email FROM users ORDER BY id")
_SELECT_USER = text("SELECT id, name, email FROM users WHERE id = :id")
_UPDATE_USER = text("UPDATE users SET name = :name, email = :email WHERE id = :id")
_DELETE_USER = text("DELETE FROM users WHERE id = :id")


def resolve_database_url(env_value: Optional[str]) -> str:
    """Resolve the SQLAlchemy URL for the application database."""

    if env_value:
        return env_value
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return f"sqlite:///{(base_dir / 'users.sqlite3').resolve(strict=False)}"


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    if not parsed.database or parsed.database == ":memory:":
        return
    Path(parsed.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def _driver_message(error: exc.SQLAlchemyError) -> str:
    original = getattr(error, "orig", None)
    if original is not None:
        return str(original)
    return str(error)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except exc.IntegrityError as error:
        raise ConstraintViolation(_driver_message(error)) from error
    except exc.DBAPIError as error:
        if error.connection_invalidated:
            raise StoreConnectionError(_driver_message(error)) from error
        raise StoreError(_driver_message(error)) from error
    except exc.SQLAlchemyError as error:
        raise StoreError(_driver_message(error)) from error


class Database:
    """Data access layer for the ``users`` table."""

    def __init__(self, url: str, *, echo: bool = False, engine: Engine | None = None) -> None:
        if engine is None:
            _ensure_sqlite_directory(url)
            connect_args: dict[str, Any] = {}
            if make_url(url).get_backend_name() == "sqlite":
                connect_args["check_same_thread"] = False
            engine = create_engine(url, echo=echo, connect_args=connect_args)
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def url(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    def _acquire(self) -> Connection:
        try:
            return self._engine.connect()
        except exc.SQLAlchemyError as error:
            raise StoreConnectionError(_driver_message(error)) from error

    @contextmanager
    def _connection(self, *, write: bool = False) -> Iterator[Connection]:
        conn = self._acquire()
        try:
            with _translate_errors():
                if write:
                    with conn.begin():
                        yield conn
                else:
                    yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the ``users`` table if it does not already exist."""

        dialect = self._engine.dialect.name
        id_column = _ID_COLUMNS.get(dialect)
        if id_column is None:
            raise StoreError(f"Unsupported database dialect: {dialect}")
        with self._connection(write=True) as conn:
            conn.execute(text(_CREATE_USERS_TABLE.format(id_column=id_column)))
        logger.info("Users table ready on %s", self.url)

    def ping(self) -> None:
        """Run a trivial statement to prove the store is reachable."""

        with self._connection() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self._engine.dispose()

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, name: Any, email: Any) -> None:
        with self._connection(write=True) as conn:
            conn.execute(_INSERT_USER, {"name": name, "email": email})

    def list_users(self) -> List[User]:
        with self._connection() as conn:
            rows = conn.execute(_SELECT_USERS).fetchall()
        return [self._row_to_user(row) for row in rows]

    def get_user(self, user_id: int) -> User:
        with self._connection() as conn:
            row = conn.execute(_SELECT_USER, {"id": user_id}).first()
        if row is None:
            raise UserNotFound(user_id)
        return self._row_to_user(row)

    def update_user(self, user_id: int, name: Any, email: Any) -> int:
        """Overwrite name and email, returning the number of affected rows.

        A result of 0 does not tell a missing id apart from a row whose values
        were already equal on stores that count changed rather than matched
        rows (MySQL).
        """

        with self._connection(write=True) as conn:
            result = conn.execute(_UPDATE_USER, {"id": user_id, "name": name, "email": email})
            affected = result.rowcount
        return affected

    def delete_user(self, user_id: int) -> int:
        with self._connection(write=True) as conn:
            result = conn.execute(_DELETE_USER, {"id": user_id})
            affected = result.rowcount
        return affected

    @staticmethod
    def _row_to_user(row: Any) -> User:
        mapping = row._mapping
        return User(id=int(mapping["id"]), name=mapping["name"], email=mapping["email"])


__all__ = ["Database", "resolve_database_url"]
