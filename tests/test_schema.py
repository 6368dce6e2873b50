import os
import sqlite3
import tempfile
import unittest

import aiomysql
import bcrypt

from db import database as db_database
from db.dialects import (
    Connection,
    Dialect,
    MysqlDialect,
    SqliteConnection,
    SqliteDialect,
)
from db.errors import SchemaError
from db.schema import (
    ORDER_ITEMS,
    PRODUCTS,
    SAMPLE_PRODUCTS,
    TABLES,
    ensure_schema,
    sample_image_url,
)
from utils import config


class BlindSqliteDialect(SqliteDialect):
    """Never sees existing tables, as if another process created them meanwhile."""

    table_exists_sql = "SELECT name FROM sqlite_master WHERE 0 AND name = ?;"


class BrokenDdlDialect(SqliteDialect):
    pk_type = "INTEGER PRIMARY KEY AUTOINCREMENT NOT A TYPE ("


class BrokenSeedDialect(SqliteDialect):
    current_timestamp_expr = "no_such_function()"


class SchemaTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "nested", "test.sqlite")

    def tearDown(self):
        self.temp_dir.cleanup()

    async def counts(self, conn):
        result = {}
        for table in TABLES:
            row = await conn.fetchone(f"SELECT COUNT(*) FROM {table.name};")
            result[table.name] = row[0]
        return result

    async def test_first_run_creates_and_seeds(self):
        conn = await SqliteDialect(self.db_path).connect()
        try:
            created = await ensure_schema(conn)
            self.assertEqual(created, ["products", "orders", "order_items", "users"])
            self.assertEqual(
                await self.counts(conn),
                {
                    "products": len(SAMPLE_PRODUCTS),
                    "orders": 0,
                    "order_items": 0,
                    "users": 1,
                },
            )
            row = await conn.fetchone(
                "SELECT image, stock FROM products WHERE name = ?;", ("Lemineral 600ml",)
            )
            self.assertEqual(row[0], sample_image_url("Lemineral 600ml"))
            self.assertEqual(row[1], config.SAMPLE_STOCK)
        finally:
            await conn.close()

    async def test_second_run_is_noop(self):
        conn = await SqliteDialect(self.db_path).connect()
        try:
            await ensure_schema(conn)
            before = await self.counts(conn)
            self.assertEqual(await ensure_schema(conn), [])
            self.assertEqual(await self.counts(conn), before)
        finally:
            await conn.close()

    async def test_existing_table_is_not_reseeded(self):
        conn = await SqliteDialect(self.db_path).connect()
        try:
            await ensure_schema(conn)
            await conn.execute("DELETE FROM products;")
            await conn.execute("DROP TABLE users;")

            self.assertEqual(await ensure_schema(conn), ["users"])
            counts = await self.counts(conn)
            self.assertEqual(counts["products"], 0)
            self.assertEqual(counts["users"], 1)
        finally:
            await conn.close()

    async def test_concurrent_creation_is_benign(self):
        conn = await SqliteDialect(self.db_path).connect()
        try:
            await ensure_schema(conn)
            before = await self.counts(conn)
        finally:
            await conn.close()

        conn = await BlindSqliteDialect(self.db_path).connect()
        try:
            self.assertEqual(await ensure_schema(conn), [])
            self.assertEqual(await self.counts(conn), before)
        finally:
            await conn.close()

    async def test_create_failure_is_fatal(self):
        conn = await BrokenDdlDialect(self.db_path).connect()
        try:
            with self.assertRaises(SchemaError):
                await ensure_schema(conn)
        finally:
            await conn.close()

    async def test_seed_failure_is_not_fatal(self):
        conn = await BrokenSeedDialect(self.db_path).connect()
        try:
            created = await ensure_schema(conn)
            self.assertEqual(created, [t.name for t in TABLES])
            counts = await self.counts(conn)
            self.assertEqual(counts["products"], 0)
            self.assertEqual(counts["users"], 0)
        finally:
            await conn.close()

    async def test_admin_password_is_hashed(self):
        conn = await SqliteDialect(self.db_path).connect()
        try:
            await ensure_schema(conn)
            row = await conn.fetchone(
                "SELECT password, role FROM users WHERE username = ?;",
                (config.ADMIN_USER,),
            )
        finally:
            await conn.close()
        self.assertNotEqual(row[0], config.ADMIN_PASSWORD)
        self.assertTrue(
            bcrypt.checkpw(config.ADMIN_PASSWORD.encode("utf-8"), row[0].encode("utf-8"))
        )
        self.assertEqual(row[1], "admin")

    async def test_deleting_order_cascades_to_items(self):
        conn = await SqliteDialect(self.db_path).connect()
        try:
            await ensure_schema(conn)
            oid = await conn.insert(
                "INSERT INTO orders (cust_name, cust_contact, address, payment, total) "
                "VALUES ('A', '1', 'x', 'COD', 10);"
            )
            await conn.execute(
                "INSERT INTO order_items (order_id, product_id, name, price, qty, sub_total) "
                "VALUES (?, 1, 'A', 10, 1, 10);",
                (oid,),
            )
            await conn.execute("DELETE FROM orders WHERE id = ?;", (oid,))
            self.assertEqual((await self.counts(conn))["order_items"], 0)
        finally:
            await conn.close()

    async def test_connect_provisions_once(self):
        db_database.use_dialect(SqliteDialect(self.db_path))
        async with db_database.connect() as conn:
            await conn.execute("DELETE FROM products;")
        async with db_database.connect() as conn:
            self.assertEqual((await self.counts(conn))["products"], 0)
        # a fresh process sees the tables and leaves them alone
        db_database.use_dialect(SqliteDialect(self.db_path))
        async with db_database.connect() as conn:
            self.assertEqual((await self.counts(conn))["products"], 0)


class DialectTestCase(unittest.TestCase):
    def test_sqlite_ddl(self):
        sql = SqliteDialect(":memory:").create_table_sql(PRODUCTS)
        self.assertTrue(sql.startswith("CREATE TABLE products ("))
        self.assertIn("id INTEGER PRIMARY KEY AUTOINCREMENT", sql)
        self.assertIn("stock INTEGER DEFAULT 0", sql)
        self.assertNotIn("ENGINE", sql)

    def test_mysql_ddl(self):
        sql = MysqlDialect().create_table_sql(PRODUCTS)
        self.assertIn("id INT AUTO_INCREMENT PRIMARY KEY", sql)
        self.assertIn("name VARCHAR(255)", sql)
        self.assertIn("created_at DATETIME DEFAULT CURRENT_TIMESTAMP", sql)
        self.assertTrue(sql.endswith("ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;"))

    def test_same_columns_in_same_order(self):
        for table in TABLES:
            for dialect in (SqliteDialect(":memory:"), MysqlDialect()):
                sql = dialect.create_table_sql(table)
                positions = [sql.index(f"\n    {name} ") for name in table.column_names]
                self.assertEqual(positions, sorted(positions))

    def test_order_items_foreign_key(self):
        for dialect in (SqliteDialect(":memory:"), MysqlDialect()):
            sql = dialect.create_table_sql(ORDER_ITEMS)
            self.assertIn(
                "FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE", sql
            )
            self.assertNotIn("FOREIGN KEY (product_id)", sql)

    def test_placeholder_rendering(self):
        sql = "SELECT * FROM products WHERE id IN (?, ?);"
        self.assertEqual(SqliteDialect(":memory:").render(sql), sql)
        self.assertEqual(
            MysqlDialect().render(sql), "SELECT * FROM products WHERE id IN (%s, %s);"
        )
        self.assertEqual(MysqlDialect().placeholders(3), "?, ?, ?")

    def test_table_exists_errors(self):
        sqlite = SqliteDialect(":memory:")
        self.assertTrue(
            sqlite.is_table_exists_error(
                sqlite3.OperationalError("table products already exists")
            )
        )
        self.assertFalse(
            sqlite.is_table_exists_error(sqlite3.OperationalError("disk I/O error"))
        )

        mysql = MysqlDialect()
        self.assertTrue(
            mysql.is_table_exists_error(
                aiomysql.OperationalError(1050, "Table 'products' already exists")
            )
        )
        self.assertFalse(
            mysql.is_table_exists_error(aiomysql.OperationalError(2003, "Can't connect"))
        )

    def test_incomplete_adapters_cannot_be_created(self):
        class NoConnectDialect(Dialect):
            def string_type(self, length):
                return "TEXT"

            def is_table_exists_error(self, exc):
                return False

        class NoCloseConnection(SqliteConnection):
            close = Connection.close

        with self.assertRaises(TypeError):
            NoConnectDialect()
        with self.assertRaises(TypeError):
            NoCloseConnection(SqliteDialect(":memory:"), None)

    def test_sample_image_url(self):
        self.assertEqual(
            sample_image_url("Lemineral 600ml"),
            config.SAMPLE_IMAGE_URL.format(name="Lemineral+600ml"),
        )
