import os
from datetime import datetime
from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer

import db.crud as crud
from db.database import get_dialect
from db.errors import NotFoundError
from db.models import Order, OrderItem
from utils import config
from utils.export import export_filename
from utils.pure import build_receipt, format_price
from views.base_screen import BaseScreen


class SalesReportScreen(BaseScreen):
    """
    Sales report: every order newest first, the selected order's items,
    CSV export and a small database status panel.
    """

    REQUIRED_ROLE = "staff"

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("Export CSV", id="btn-export", variant="success")
            yield Button("DB Status", id="btn-status")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Date", "Name", "Contact", "Payment", "Total")

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        orders = await crud.list_orders()
        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.id,
                o.created_at,
                o.cust_name,
                o.cust_contact,
                o.payment,
                format_price(o.total),
            )
        if orders:
            table.cursor_coordinate = (0, 0)
            self.show_detail(orders[0].id)
        else:
            await self._update_md("### No orders yet.")

    @on(DataTable.RowHighlighted, "#table-orders")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        row = event.data_table.get_row(event.row_key)
        self.show_detail(int(row[0]))

    @work(exclusive=True, group="detail")
    async def show_detail(self, order_id: int) -> None:
        try:
            order, items = await crud.get_order_detail(order_id)
        except NotFoundError:
            await self._update_md(f"### Order #{order_id} no longer exists.")
            return
        await self._update_md(self._render_detail(order, items))

    def _render_detail(self, order: Order, items: List[OrderItem]) -> str:
        header = (
            f"### Order #{order.id}\n"
            f"Date: {order.created_at}  \n"
            f"Customer: {order.cust_name} ({order.cust_contact})  \n"
            f"Address: {order.address}  \n"
            f"Payment: {order.payment}\n\n"
        )
        rows = [
            "| Product | Price | Qty | Subtotal |",
            "|---|---:|---:|---:|",
        ]
        for it in items:
            rows.append(
                f"| {it.name} | {format_price(it.price)} | {it.qty} | {format_price(it.sub_total)} |"
            )
        footer = f"\n\n**Total:** {format_price(order.total)}\n\n"
        message = "\n".join(
            "    " + line for line in build_receipt(order, items).as_text().splitlines()
        )
        return header + "\n".join(rows) + footer + "#### Message\n\n" + message

    async def _update_md(self, md: str) -> None:
        await self.query_one("#md-order-detail", MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-export")
    @work(exclusive=True, group="export")
    async def handle_export(self) -> None:
        os.makedirs(config.EXPORT_DIR, exist_ok=True)
        path = os.path.join(config.EXPORT_DIR, export_filename(datetime.now()))
        with open(path, "w", newline="", encoding="utf-8") as f:
            async for chunk in crud.export_csv():
                f.write(chunk)
        self.notify(f"Report exported to {path}")

    @on(Button.Pressed, "#btn-status")
    @work(exclusive=True, group="status")
    async def handle_status(self) -> None:
        counts = await crud.table_counts()
        lines = [
            "### Database Status\n",
            f"- Connection: {get_dialect().describe()}",
            f"- Log file: {config.LOG_FILE or '-'}\n",
            "| Table | Rows |",
            "|---|---:|",
        ]
        for table, count in counts.items():
            lines.append(f"| {table} | {'error' if count is None else count} |")
        await self._update_md("\n".join(lines))
