# CSV rendering of the sales report
import csv
import io
from datetime import datetime
from typing import Dict, Iterable, Iterator, List

from db.models import Order

EXPORT_COLUMNS: List[str] = [
    "Order ID",
    "Date",
    "Name",
    "Contact",
    "Address",
    "Payment",
    "Total",
]

MIME_TYPE = "text/csv"


def _order_row(order: Order) -> list:
    return [
        order.id,
        order.created_at,
        order.cust_name,
        order.cust_contact,
        order.address,
        order.payment,
        order.total,
    ]


def iter_csv(orders: Iterable[Order]) -> Iterator[str]:
    """
    Yield the report one CSV line at a time, header first.

    Quoting follows the csv module defaults, so commas, quotes and newlines
    inside names or addresses survive a round trip.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)

    def flush() -> str:
        chunk = buf.getvalue()
        buf.seek(0)
        buf.truncate(0)
        return chunk

    writer.writerow(EXPORT_COLUMNS)
    yield flush()
    for order in orders:
        writer.writerow(_order_row(order))
        yield flush()


def export_filename(now: datetime) -> str:
    return f"sales_report_{now:%Y%m%d_%H%M%S}.csv"


def download_headers(now: datetime) -> Dict[str, str]:
    """HTTP headers for serving the export as a file download."""
    return {
        "Content-Type": f"{MIME_TYPE}; charset=utf-8",
        "Content-Disposition": f"attachment; filename={export_filename(now)}",
    }
