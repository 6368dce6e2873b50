# storage dialect adapters: everything that differs between SQLite and MySQL
from __future__ import annotations

import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

import aiomysql
import aiosqlite

from utils import config

# driver level errors, whatever the dialect
STORAGE_ERRORS: Tuple[type, ...] = (sqlite3.Error, aiomysql.Error)


@dataclass(frozen=True)
class Column:
    """Logical column; each dialect renders its own DDL for it."""

    name: str
    kind: str  # "pk", "int", "string", "text" or "timestamp"
    length: int = 255
    default: Optional[int] = None
    unique: bool = False


@dataclass(frozen=True)
class ForeignKey:
    column: str
    ref_table: str
    ref_column: str = "id"
    on_delete: str = "CASCADE"


@dataclass(frozen=True)
class Table:
    name: str
    columns: Tuple[Column, ...]
    foreign_keys: Tuple[ForeignKey, ...] = field(default=())

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class Connection(ABC):
    """
    Thin async wrapper giving both drivers the same surface.

    SQL is always written with `?` placeholders; the dialect rewrites them.
    """

    def __init__(self, dialect: "Dialect", raw: Any) -> None:
        self.dialect = dialect
        self.raw = raw

    @abstractmethod
    async def execute(self, sql: str, params: Sequence = ()) -> int:
        """Run a statement, return the affected row count."""
        raise NotImplementedError

    @abstractmethod
    async def insert(self, sql: str, params: Sequence = ()) -> int:
        """Run an INSERT, return the generated primary key."""
        raise NotImplementedError

    @abstractmethod
    async def fetchone(self, sql: str, params: Sequence = ()) -> Optional[Sequence]:
        raise NotImplementedError

    @abstractmethod
    async def fetchall(self, sql: str, params: Sequence = ()) -> List[Sequence]:
        raise NotImplementedError

    @abstractmethod
    async def begin(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    @asynccontextmanager
    async def transaction(self):
        """BEGIN ... COMMIT, ROLLBACK and re-raise on any error."""
        await self.begin()
        try:
            yield self
        except BaseException:
            await self.rollback()
            raise
        else:
            await self.commit()


class SqliteConnection(Connection):
    async def execute(self, sql, params=()):
        cur = await self.raw.execute(sql, tuple(params))
        count = cur.rowcount
        await cur.close()
        return count

    async def insert(self, sql, params=()):
        cur = await self.raw.execute(sql, tuple(params))
        new_id = cur.lastrowid
        await cur.close()
        return int(new_id)

    async def fetchone(self, sql, params=()):
        cur = await self.raw.execute(sql, tuple(params))
        row = await cur.fetchone()
        await cur.close()
        return row

    async def fetchall(self, sql, params=()):
        cur = await self.raw.execute(sql, tuple(params))
        rows = await cur.fetchall()
        await cur.close()
        return list(rows)

    async def begin(self):
        # take the write lock up front so concurrent checkouts queue up
        await self.raw.execute("BEGIN IMMEDIATE;")

    async def commit(self):
        await self.raw.execute("COMMIT;")

    async def rollback(self):
        await self.raw.execute("ROLLBACK;")

    async def close(self):
        await self.raw.close()


class MysqlConnection(Connection):
    async def _run(self, sql: str, params: Sequence):
        cur = await self.raw.cursor()
        await cur.execute(self.dialect.render(sql), tuple(params))
        return cur

    async def execute(self, sql, params=()):
        cur = await self._run(sql, params)
        count = cur.rowcount
        await cur.close()
        return count

    async def insert(self, sql, params=()):
        cur = await self._run(sql, params)
        new_id = cur.lastrowid
        await cur.close()
        return int(new_id)

    async def fetchone(self, sql, params=()):
        cur = await self._run(sql, params)
        row = await cur.fetchone()
        await cur.close()
        return row

    async def fetchall(self, sql, params=()):
        cur = await self._run(sql, params)
        rows = await cur.fetchall()
        await cur.close()
        return list(rows)

    async def begin(self):
        await self.raw.begin()

    async def commit(self):
        await self.raw.commit()

    async def rollback(self):
        await self.raw.rollback()

    async def close(self):
        self.raw.close()


class Dialect(ABC):
    name = "base"
    placeholder = "?"

    # DDL building blocks, filled in by subclasses
    pk_type = ""
    int_type = ""
    text_type = ""
    timestamp_type = ""
    table_options = ""

    # expression usable inside INSERT ... VALUES
    current_timestamp_expr = ""

    # query with a single parameter, the table name; returns a row if present
    table_exists_sql = ""

    @abstractmethod
    def string_type(self, length: int) -> str:
        raise NotImplementedError

    def render(self, sql: str) -> str:
        """Rewrite `?` placeholders into the driver's paramstyle."""
        if self.placeholder == "?":
            return sql
        return sql.replace("?", self.placeholder)

    def placeholders(self, count: int) -> str:
        return ", ".join(["?"] * count)

    def column_sql(self, col: Column) -> str:
        if col.kind == "pk":
            ddl = self.pk_type
        elif col.kind == "int":
            ddl = self.int_type
        elif col.kind == "string":
            ddl = self.string_type(col.length)
        elif col.kind == "text":
            ddl = self.text_type
        elif col.kind == "timestamp":
            ddl = self.timestamp_type
        else:
            raise ValueError(f"Unknown column kind: {col.kind}")
        if col.default is not None:
            ddl += f" DEFAULT {int(col.default)}"
        if col.unique:
            ddl += " UNIQUE"
        return f"{col.name} {ddl}"

    def create_table_sql(self, table: Table) -> str:
        parts = [self.column_sql(c) for c in table.columns]
        parts += [
            f"FOREIGN KEY ({fk.column}) REFERENCES {fk.ref_table}({fk.ref_column}) "
            f"ON DELETE {fk.on_delete}"
            for fk in table.foreign_keys
        ]
        body = ",\n    ".join(parts)
        sql = f"CREATE TABLE {table.name} (\n    {body}\n)"
        if self.table_options:
            sql += " " + self.table_options
        return sql + ";"

    @abstractmethod
    def is_table_exists_error(self, exc: BaseException) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def connect(self) -> Connection:
        raise NotImplementedError

    def describe(self) -> str:
        return self.name


class SqliteDialect(Dialect):
    name = "sqlite"
    placeholder = "?"

    pk_type = "INTEGER PRIMARY KEY AUTOINCREMENT"
    int_type = "INTEGER"
    text_type = "TEXT"
    timestamp_type = "TEXT DEFAULT CURRENT_TIMESTAMP"
    current_timestamp_expr = "datetime('now')"
    table_exists_sql = """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or config.DB_PATH

    def string_type(self, length):
        return "TEXT"

    def is_table_exists_error(self, exc):
        return isinstance(exc, sqlite3.OperationalError) and "already exists" in str(
            exc
        )

    async def connect(self):
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        # autocommit; multi-statement writes use explicit BEGIN/COMMIT
        conn = await aiosqlite.connect(self.path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        await conn.execute("PRAGMA foreign_keys = ON;")
        return SqliteConnection(self, conn)

    def describe(self):
        return f"sqlite: {self.path}"


class MysqlDialect(Dialect):
    name = "mysql"
    placeholder = "%s"

    pk_type = "INT AUTO_INCREMENT PRIMARY KEY"
    int_type = "INT"
    text_type = "TEXT"
    timestamp_type = "DATETIME DEFAULT CURRENT_TIMESTAMP"
    table_options = "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
    current_timestamp_expr = "NOW()"
    table_exists_sql = """
        SELECT TABLE_NAME
        FROM information_schema.TABLES
        WHERE TABLE_SCHEMA = DATABASE()
          AND TABLE_NAME = ?;
        """

    # ER_TABLE_EXISTS_ERROR
    TABLE_EXISTS_CODE = 1050

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        db: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        self.host = host or config.MYSQL_HOST
        self.port = port or config.MYSQL_PORT
        self.db = db or config.MYSQL_DB
        self.user = user or config.MYSQL_USER
        self.password = config.MYSQL_PASSWORD if password is None else password

    def string_type(self, length):
        return f"VARCHAR({length})"

    def is_table_exists_error(self, exc):
        return (
            isinstance(exc, aiomysql.Error)
            and bool(exc.args)
            and exc.args[0] == self.TABLE_EXISTS_CODE
        )

    async def connect(self):
        conn = await aiomysql.connect(
            host=self.host,
            port=self.port,
            db=self.db,
            user=self.user,
            password=self.password,
            charset="utf8mb4",
            autocommit=True,
        )
        return MysqlConnection(self, conn)

    def describe(self):
        return f"mysql: {self.host}:{self.port} / {self.db}"


def dialect_from_config() -> Dialect:
    if config.DB_DIALECT == "sqlite":
        return SqliteDialect()
    if config.DB_DIALECT == "mysql":
        return MysqlDialect()
    raise ValueError(f"Unsupported STORE_DB_DIALECT: {config.DB_DIALECT!r}")
