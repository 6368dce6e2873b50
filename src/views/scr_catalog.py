from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.events import ScreenResume
from textual.widgets import DataTable, Input

import db.crud
from db.models import Product
from utils.messages import CartChangedMessage, CatalogChangedMessage
from utils.pure import format_price
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal


class CatalogScreen(BaseScreen):
    """
    Product catalog for customers, newest products first.
    Enter on a row opens the product detail where it can be added to the cart.
    """

    def __init__(self):
        super().__init__()
        self._products: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Input(id="input-filter", placeholder="Type to filter products...")
        yield DataTable(id="table-catalog")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Price", "Stock", "Image")

    @on(ScreenResume)
    @on(CatalogChangedMessage)
    @work(exclusive=True)
    async def reload_products(self) -> None:
        self._products = await db.crud.list_products()
        self.fill_table(self.query_one("#input-filter", Input).value)

    @on(Input.Changed, "#input-filter")
    def handle_filter(self, message: Input.Changed) -> None:
        self.fill_table(message.value)

    def fill_table(self, query: str) -> None:
        needle = query.strip().lower()
        table = self.query_one(DataTable)
        table.clear()
        table.add_rows(
            [
                (p.id, p.name, format_price(p.price), p.stock, p.image)
                for p in self._products
                if needle in p.name.lower()
            ]
        )

    @on(DataTable.RowSelected, "#table-catalog")
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        pid = event.data_table.get_row(event.row_key)[0]
        self.open_detail(int(pid))

    @work()
    async def open_detail(self, pid: int) -> None:
        if await self.app.push_screen_wait(ProdDetailModal(pid)):
            self.post_message(CartChangedMessage())
