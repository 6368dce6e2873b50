from typing import List, Literal, Optional, Sequence
from urllib.parse import quote

from db.models import CustomerInfo, Order, OrderItem, OrderReceipt, Product
from utils import config


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [list(map(str, row)) for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(map(str, row)) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def format_price(amount: int, currency: Optional[str] = None) -> str:
    """
    Format an integer amount with dot thousands separators.

    >>> format_price(15000, "Rp")
    'Rp 15.000'
    """
    currency = config.CURRENCY if currency is None else currency
    sign = "-" if amount < 0 else ""
    digits = f"{abs(int(amount)):,}".replace(",", ".")
    return f"{currency} {sign}{digits}" if currency else f"{sign}{digits}"


def build_receipt(order: Order, items: Sequence[OrderItem]) -> OrderReceipt:
    """
    Build the message payload for a persisted order.

    Only reads the stored order and its item snapshots, so the same receipt
    can be rebuilt at any time after checkout.
    """
    lines = tuple(
        f"{it.name} x{it.qty} - {format_price(it.sub_total)}" for it in items
    )
    return OrderReceipt(
        order_id=order.id,
        lines=lines,
        total=format_price(order.total),
        customer=CustomerInfo(
            name=order.cust_name,
            contact=order.cust_contact,
            address=order.address,
            payment=order.payment,
        ),
        header=f"New order #{order.id}",
    )


def message_link(phone: str, text: str) -> str:
    """Prefilled chat link for the messaging collaborator."""
    return f"https://wa.me/{phone}?text={quote(text, safe='')}"


def product_inquiry_text(product: Product) -> str:
    """Chat message for ordering a single product straight from the catalog."""
    return f"Contact us\n\nHello, I would like to order: {product.name}"
