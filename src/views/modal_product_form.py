from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label

from db.crud import create_product, update_product
from db.errors import ValidationError
from db.models import Product
from utils.uploads import resolve_image


class ProductFormModal(ModalScreen[bool]):
    """
    Add a product, or edit one when `prod` is given.
    The image field takes a local file (copied into the upload dir) or a URL;
    left blank on edit it keeps the current image.
    Returns True if the catalog changed.
    """

    def __init__(self, prod: Optional[Product] = None) -> None:
        super().__init__()
        self.prod = prod

    def compose(self) -> ComposeResult:
        title = f"Edit Product #{self.prod.id}" if self.prod else "Add Product"
        with Vertical(id="div-product-form"):
            yield Label(title, id="caption")
            yield Label("Name")
            yield Input(self.prod.name if self.prod else "", id="input-name")
            yield Label("Price")
            yield Input(
                str(self.prod.price) if self.prod else "",
                type="integer",
                validators=[Number(minimum=0)],
                id="input-price",
            )
            yield Label("Stock")
            yield Input(
                str(self.prod.stock) if self.prod else "0",
                type="integer",
                validators=[Number(minimum=0)],
                id="input-stock",
            )
            yield Label("Image (file path or URL)")
            yield Input(
                placeholder=(self.prod.image if self.prod else "") or "leave blank for none",
                id="input-image",
            )
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Save", id="btn-save", variant="success")

    def on_mount(self):
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        name = self.query_one("#input-name", Input).value
        price = self.query_one("#input-price", Input).value
        stock = self.query_one("#input-stock", Input).value
        try:
            image = resolve_image(self.query_one("#input-image", Input).value)
        except OSError as e:
            self.notify(f"Could not store image: {e}", severity="error")
            return

        try:
            if self.prod:
                await update_product(self.prod.id, name, price, stock, image or None)
                self.notify("Product updated.")
            else:
                await create_product(name, price, stock, image)
                self.notify("Product added.")
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return
        self.dismiss(True)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(False)
