# required tables, seed data and the idempotent provisioner
from __future__ import annotations

from typing import Awaitable, Callable, Dict, List
from urllib.parse import quote_plus

import bcrypt

from db.dialects import STORAGE_ERRORS, Column, Connection, ForeignKey, Table
from db.errors import SchemaError
from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)

PRODUCTS = Table(
    "products",
    (
        Column("id", "pk"),
        Column("name", "string"),
        Column("price", "int"),
        Column("image", "string"),
        Column("stock", "int", default=0),
        Column("created_at", "timestamp"),
    ),
)

ORDERS = Table(
    "orders",
    (
        Column("id", "pk"),
        Column("cust_name", "string"),
        Column("cust_contact", "string", length=50),
        Column("address", "text"),
        Column("payment", "string", length=50),
        Column("total", "int"),
        Column("created_at", "timestamp"),
    ),
)

# product_id is not a foreign key: products can be deleted
# while their order items keep the name/price snapshot
ORDER_ITEMS = Table(
    "order_items",
    (
        Column("id", "pk"),
        Column("order_id", "int"),
        Column("product_id", "int"),
        Column("name", "string"),
        Column("price", "int"),
        Column("qty", "int"),
        Column("sub_total", "int"),
    ),
    foreign_keys=(ForeignKey("order_id", "orders"),),
)

USERS = Table(
    "users",
    (
        Column("id", "pk"),
        Column("username", "string", length=100, unique=True),
        Column("password", "string"),
        Column("role", "string", length=20),
        Column("created_at", "timestamp"),
    ),
)

# creation order matters, order_items references orders
TABLES: List[Table] = [PRODUCTS, ORDERS, ORDER_ITEMS, USERS]

SAMPLE_PRODUCTS = [
    ("Lemineral 600ml", 4000),
    ("Lemineral 1,5Lt", 7000),
    ("Lemineral Galon", 40000),
    ("Aqua Gallon", 45000),
    ("Vit 330", 5000),
    ("Ciremai Cup", 6000),
    ("Ciremai Botol 600Ml", 8000),
    ("SUI 600", 5000),
    ("Aqua 600Ml", 4500),
    ("Aqua 1.5Lt", 7000),
    ("The Pucuk 250Ml", 6000),
    ("Nipis Madu", 6500),
    ("The Botol Sosro Pet", 7000),
    ("Es Teler", 10000),
    ("Panter", 8000),
    ("The Gelas", 5500),
    ("The Semesta", 6000),
    ("The Rio", 6500),
]


def sample_image_url(name: str) -> str:
    return config.SAMPLE_IMAGE_URL.format(name=quote_plus(name))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


async def table_exists(conn: Connection, table_name: str) -> bool:
    row = await conn.fetchone(conn.dialect.table_exists_sql, (table_name,))
    return row is not None


async def _seed_products(conn: Connection) -> None:
    sql = (
        "INSERT INTO products (name, price, image, stock, created_at) "
        f"VALUES (?, ?, ?, ?, {conn.dialect.current_timestamp_expr});"
    )
    inserted = 0
    for name, price in SAMPLE_PRODUCTS:
        try:
            await conn.execute(
                sql, (name, price, sample_image_url(name), config.SAMPLE_STOCK)
            )
            inserted += 1
        except STORAGE_ERRORS as e:
            _logger.warning(f"Skipping sample product {name!r}: {e}")
    _logger.info(f"Inserted {inserted} sample products")


async def _seed_users(conn: Connection) -> None:
    sql = (
        "INSERT INTO users (username, password, role, created_at) "
        f"VALUES (?, ?, 'admin', {conn.dialect.current_timestamp_expr});"
    )
    try:
        await conn.execute(sql, (config.ADMIN_USER, hash_password(config.ADMIN_PASSWORD)))
        _logger.info(f"Inserted default admin user: {config.ADMIN_USER}")
    except STORAGE_ERRORS as e:
        _logger.warning(f"Insert admin failed: {e}")


SEEDERS: Dict[str, Callable[[Connection], Awaitable[None]]] = {
    "products": _seed_products,
    "users": _seed_users,
}


async def _create_table(conn: Connection, table: Table) -> bool:
    """
    Create `table`. Returns False when another process won the race and the
    table already exists; any other failure is fatal.
    """
    try:
        await conn.execute(conn.dialect.create_table_sql(table))
    except STORAGE_ERRORS as e:
        if conn.dialect.is_table_exists_error(e):
            _logger.info(f"Table {table.name} created concurrently, skipping")
            return False
        _logger.error(f"Creating table {table.name} failed: {e}")
        raise SchemaError(f"Cannot create required table {table.name!r}") from e
    _logger.info(f"Created table: {table.name}")
    return True


async def ensure_schema(conn: Connection) -> List[str]:
    """
    Create whichever required tables are missing and seed the ones just
    created. Existing tables are left untouched.

    Returns the names of the tables created by this call.
    """
    created: List[str] = []
    for table in TABLES:
        if await table_exists(conn, table.name):
            continue
        if not await _create_table(conn, table):
            continue
        created.append(table.name)
        seeder = SEEDERS.get(table.name)
        if seeder is not None:
            await seeder(conn)
    return created
