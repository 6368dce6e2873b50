# src/db/crud.py
from __future__ import annotations

from typing import AsyncIterator, Dict, Iterable, List, Optional, Tuple

import bcrypt

from db import models
from db.database import connect
from db.dialects import STORAGE_ERRORS
from db.errors import CheckoutError, NotFoundError, ValidationError
from db.schema import TABLES, hash_password
from utils.cart import CartState, to_int
from utils.export import iter_csv
from utils.logger import get_logger
from utils.pure import build_receipt

_logger = get_logger(__name__)

ROLES = ("admin", "staff")

_PRODUCT_COLS = "id, name, price, image, stock, created_at"
_ORDER_COLS = "id, cust_name, cust_contact, address, payment, total, created_at"
_ITEM_COLS = "id, order_id, product_id, name, price, qty, sub_total"
_USER_COLS = "id, username, password, role, created_at"


def _row_to_product(row) -> models.Product:
    return models.Product(
        id=int(row[0]),
        name=row[1],
        price=int(row[2] or 0),
        image=row[3] or "",
        stock=int(row[4] or 0),
        created_at=str(row[5] or ""),
    )


def _row_to_order(row) -> models.Order:
    return models.Order(
        id=int(row[0]),
        cust_name=row[1],
        cust_contact=row[2],
        address=row[3],
        payment=row[4],
        total=int(row[5] or 0),
        created_at=str(row[6] or ""),
    )


def _row_to_item(row) -> models.OrderItem:
    return models.OrderItem(
        id=int(row[0]),
        order_id=int(row[1]),
        product_id=int(row[2]),
        name=row[3],
        price=int(row[4]),
        qty=int(row[5]),
        sub_total=int(row[6]),
    )


def _row_to_user(row) -> models.User:
    return models.User(
        id=int(row[0]),
        username=row[1],
        password=row[2],
        role=row[3],
        created_at=str(row[4] or ""),
    )


def _non_negative(val, field: str) -> int:
    num = to_int(val)
    if num is None or num < 0:
        raise ValidationError(f"{field} must be a whole number, 0 or more.")
    return num


# ---------------------------
# Products (Catalog)
# ---------------------------


async def list_products() -> List[models.Product]:
    """All products, newest first."""
    async with connect() as conn:
        rows = await conn.fetchall(
            f"SELECT {_PRODUCT_COLS} FROM products ORDER BY id DESC;"
        )
    return [_row_to_product(row) for row in rows]


async def get_product(pid: int) -> Optional[models.Product]:
    """Fetch a product by id."""
    async with connect() as conn:
        row = await conn.fetchone(
            f"SELECT {_PRODUCT_COLS} FROM products WHERE id = ?;", (pid,)
        )
    if not row:
        return None
    return _row_to_product(row)


async def get_products(pids: Iterable[int]) -> Dict[int, models.Product]:
    """
    Bulk read used by cart and checkout. Ids that no longer exist are simply
    missing from the result.
    """
    ids = sorted({int(p) for p in pids})
    if not ids:
        return {}
    async with connect() as conn:
        rows = await conn.fetchall(
            f"SELECT {_PRODUCT_COLS} FROM products "
            f"WHERE id IN ({conn.dialect.placeholders(len(ids))});",
            ids,
        )
    products = [_row_to_product(row) for row in rows]
    return {p.id: p for p in products}


async def create_product(name: str, price, stock, image: str = "") -> int:
    """Insert a product and return its id."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name is required.")
    price = _non_negative(price, "Price")
    stock = _non_negative(stock, "Stock")
    async with connect() as conn:
        pid = await conn.insert(
            "INSERT INTO products (name, price, image, stock, created_at) "
            f"VALUES (?, ?, ?, ?, {conn.dialect.current_timestamp_expr});",
            (name, price, image or "", stock),
        )
    _logger.info(f"Product {pid} created: {name}")
    return pid


async def update_product(
    pid: int, name: str, price, stock, image: Optional[str] = None
) -> bool:
    """
    Update name, price and stock; the image only when one is given.
    Return True if a row was updated.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name is required.")
    price = _non_negative(price, "Price")
    stock = _non_negative(stock, "Stock")
    async with connect() as conn:
        if image:
            count = await conn.execute(
                "UPDATE products SET name = ?, price = ?, stock = ?, image = ? WHERE id = ?;",
                (name, price, stock, image, pid),
            )
        else:
            count = await conn.execute(
                "UPDATE products SET name = ?, price = ?, stock = ? WHERE id = ?;",
                (name, price, stock, pid),
            )
    return count > 0


async def delete_product(pid: int) -> bool:
    """Hard delete. Order items keep their own copy of name and price."""
    async with connect() as conn:
        count = await conn.execute("DELETE FROM products WHERE id = ?;", (pid,))
    if count:
        _logger.info(f"Product {pid} deleted")
    return count > 0


# ---------------------------
# Users
# ---------------------------


def _check_role(role: str) -> str:
    role = (role or "staff").strip().lower()
    if role not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}.")
    return role


async def list_users() -> List[models.User]:
    async with connect() as conn:
        rows = await conn.fetchall(f"SELECT {_USER_COLS} FROM users ORDER BY id DESC;")
    return [_row_to_user(row) for row in rows]


async def get_user_by_name(username: str) -> Optional[models.User]:
    async with connect() as conn:
        row = await conn.fetchone(
            f"SELECT {_USER_COLS} FROM users WHERE username = ?;", (username,)
        )
    return _row_to_user(row) if row else None


async def create_user(username: str, password: str, role: str = "staff") -> int:
    """Create a user with a bcrypt-hashed password, return the new id."""
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required.")
    role = _check_role(role)
    if await get_user_by_name(username):
        raise ValidationError(f"Username {username!r} is already taken.")
    try:
        async with connect() as conn:
            uid = await conn.insert(
                "INSERT INTO users (username, password, role, created_at) "
                f"VALUES (?, ?, ?, {conn.dialect.current_timestamp_expr});",
                (username, hash_password(password), role),
            )
    except STORAGE_ERRORS as e:
        # e.g. a concurrent create took the name after the check above
        _logger.error(f"create_user failed (username={username!r}): {e}")
        raise ValidationError(f"Could not save user {username!r}.") from e
    _logger.info(f"User {uid} created: {username} ({role})")
    return uid


async def update_user(
    uid: int, username: str, password: Optional[str] = None, role: str = "staff"
) -> bool:
    """
    Update username and role; the password is rehashed only when given.
    Renaming onto another user's name raises ValidationError.
    """
    username = (username or "").strip()
    if not uid or not username:
        raise ValidationError("Incomplete user data.")
    role = _check_role(role)
    existing = await get_user_by_name(username)
    if existing is not None and existing.id != uid:
        raise ValidationError(f"Username {username!r} is already taken.")
    try:
        async with connect() as conn:
            if password:
                count = await conn.execute(
                    "UPDATE users SET username = ?, password = ?, role = ? WHERE id = ?;",
                    (username, hash_password(password), role, uid),
                )
            else:
                count = await conn.execute(
                    "UPDATE users SET username = ?, role = ? WHERE id = ?;",
                    (username, role, uid),
                )
    except STORAGE_ERRORS as e:
        _logger.error(f"update_user failed (id={uid}, username={username!r}): {e}")
        raise ValidationError(f"Could not save user {username!r}.") from e
    return count > 0


async def delete_user(uid: int) -> bool:
    async with connect() as conn:
        count = await conn.execute("DELETE FROM users WHERE id = ?;", (uid,))
    return count > 0


async def authenticate(username: str, password: str) -> Optional[models.User]:
    """Return the User if the password matches its stored hash, else None."""
    if not username or not password:
        return None
    user = await get_user_by_name(username.strip())
    if user is None:
        return None
    try:
        ok = bcrypt.checkpw(password.encode("utf-8"), user.password.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        _logger.warning(f"User {user.id} has an unreadable password hash")
        return None
    return user if ok else None


# ---------------------------
# Checkout & Orders
# ---------------------------


def _validate_customer(customer: models.CustomerInfo) -> models.CustomerInfo:
    fields = {
        "name": customer.name,
        "contact": customer.contact,
        "address": customer.address,
        "payment method": customer.payment,
    }
    missing = [k for k, v in fields.items() if not (v or "").strip()]
    if missing:
        raise ValidationError(f"Missing customer {', '.join(missing)}.")
    return models.CustomerInfo(
        name=customer.name.strip(),
        contact=customer.contact.strip(),
        address=customer.address.strip(),
        payment=customer.payment.strip(),
    )


async def checkout(
    cart: CartState, customer: models.CustomerInfo
) -> models.OrderReceipt:
    """
    Turn the cart into an order and its items, all in one transaction.

    Cart entries whose product no longer exists are dropped. On success the
    cart is cleared and the receipt for the stored order is returned; on a
    storage failure nothing is kept and the cart is left as it was.

    The receipt is read back after the commit. If that read fails the order
    is already persisted and the cart already cleared; the driver error is
    logged and propagates.
    """
    if not cart:
        raise ValidationError("Cart is empty.")
    customer = _validate_customer(customer)

    quantities = cart.as_dict()
    products = await get_products(quantities)
    stale = [pid for pid in quantities if pid not in products]
    if stale:
        _logger.info(f"Dropping unavailable products from checkout: {stale}")

    # keep cart order for the item rows
    lines: List[Tuple[models.Product, int, int]] = []
    total = 0
    for pid, qty in quantities.items():
        prod = products.get(pid)
        if prod is None:
            continue
        sub_total = prod.price * qty
        total += sub_total
        lines.append((prod, qty, sub_total))

    if not lines:
        raise ValidationError("None of the products in the cart are available.")

    order_id = None
    try:
        async with connect() as conn:
            async with conn.transaction():
                order_id = await conn.insert(
                    "INSERT INTO orders (cust_name, cust_contact, address, payment, total, created_at) "
                    f"VALUES (?, ?, ?, ?, ?, {conn.dialect.current_timestamp_expr});",
                    (
                        customer.name,
                        customer.contact,
                        customer.address,
                        customer.payment,
                        total,
                    ),
                )
                for prod, qty, sub_total in lines:
                    await conn.insert(
                        "INSERT INTO order_items (order_id, product_id, name, price, qty, sub_total) "
                        "VALUES (?, ?, ?, ?, ?, ?);",
                        (order_id, prod.id, prod.name, prod.price, qty, sub_total),
                    )
    except STORAGE_ERRORS as e:
        _logger.error(
            f"checkout failed, rolled back (order_id={order_id}, "
            f"products={[p.id for p, _, _ in lines]}): {e}"
        )
        raise CheckoutError("Could not save the order, please try again.") from e

    cart.clear()
    _logger.info(f"Order {order_id} placed, {len(lines)} item(s), total {total}")
    try:
        return await get_receipt(order_id)
    except STORAGE_ERRORS as e:
        _logger.error(f"Order {order_id} is saved but reloading it failed: {e}")
        raise


async def list_orders() -> List[models.Order]:
    """All orders, newest first. No pagination."""
    async with connect() as conn:
        rows = await conn.fetchall(f"SELECT {_ORDER_COLS} FROM orders ORDER BY id DESC;")
    return [_row_to_order(row) for row in rows]


async def get_order_detail(
    order_id: int,
) -> Tuple[models.Order, List[models.OrderItem]]:
    """
    Return (order, items) for a specific order.
    Raises NotFoundError for an unknown id.
    """
    async with connect() as conn:
        order_row = await conn.fetchone(
            f"SELECT {_ORDER_COLS} FROM orders WHERE id = ?;", (order_id,)
        )
        if not order_row:
            raise NotFoundError(f"Order {order_id} not found.")
        item_rows = await conn.fetchall(
            f"SELECT {_ITEM_COLS} FROM order_items WHERE order_id = ? ORDER BY id;",
            (order_id,),
        )
    return _row_to_order(order_row), [_row_to_item(row) for row in item_rows]


async def get_receipt(order_id: int) -> models.OrderReceipt:
    """Rebuild the checkout message for a stored order."""
    order, items = await get_order_detail(order_id)
    return build_receipt(order, items)


async def export_csv() -> AsyncIterator[str]:
    """Stream the sales report as CSV, one order per row, newest first."""
    orders = await list_orders()
    for chunk in iter_csv(orders):
        yield chunk


# ---------------------------
# Diagnostics
# ---------------------------


async def table_counts() -> Dict[str, Optional[int]]:
    """Row count per required table; None when a table cannot be read."""
    counts: Dict[str, Optional[int]] = {}
    async with connect() as conn:
        for table in TABLES:
            try:
                row = await conn.fetchone(f"SELECT COUNT(*) FROM {table.name};")
                counts[table.name] = int(row[0])
            except STORAGE_ERRORS as e:
                _logger.warning(f"Counting rows of {table.name} failed: {e}")
                counts[table.name] = None
    return counts
