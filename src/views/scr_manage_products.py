from __future__ import annotations

from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable

from db.crud import delete_product, list_products
from db.models import Product
from utils.messages import CatalogChangedMessage
from utils.pure import format_price
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_product_form import ProductFormModal


class ManageProductsScreen(BaseScreen):
    """
    Staff can add, edit and delete products.
    """

    REQUIRED_ROLE = "staff"

    def __init__(self) -> None:
        super().__init__()
        self._products: Dict[int, Product] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-products")
            with Horizontal(id="hort-controls"):
                yield Button("Add", id="btn-add", variant="success")
                yield Button("Edit", id="btn-edit", variant="primary")
                yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Price", "Stock", "Image", "Added")

    @on(ScreenResume)
    @on(CatalogChangedMessage)
    @work(exclusive=True)
    async def reload(self) -> None:
        products = await list_products()
        self._products = {p.id: p for p in products}
        table = self.query_one(DataTable)
        table.clear()
        table.add_rows(
            [
                (p.id, p.name, format_price(p.price), p.stock, p.image, p.created_at)
                for p in products
            ]
        )

    def selected(self) -> Optional[Product]:
        table = self.query_one(DataTable)
        if not table.row_count:
            return None
        pid = table.get_row_at(table.cursor_row)[0]
        return self._products.get(int(pid))

    @on(Button.Pressed, "#btn-add")
    @work()
    async def handle_add(self) -> None:
        if await self.app.push_screen_wait(ProductFormModal()):
            self.post_message(CatalogChangedMessage())

    @on(Button.Pressed, "#btn-edit")
    @work()
    async def handle_edit(self) -> None:
        prod = self.selected()
        if prod is None:
            self.notify("Select a product first.", severity="warning")
            return
        if await self.app.push_screen_wait(ProductFormModal(prod)):
            self.post_message(CatalogChangedMessage())

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        prod = self.selected()
        if prod is None:
            self.notify("Select a product first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete {prod.name}? Past orders keep their copy.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        if await delete_product(prod.id):
            self.notify("Product deleted.")
        else:
            self.notify("Product was already gone.", severity="warning")
        self.post_message(CatalogChangedMessage())
