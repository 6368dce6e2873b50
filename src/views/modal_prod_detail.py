from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.crud import get_product
from db.models import Product
from utils import config
from utils.pure import (
    format_price,
    generate_markdown_table,
    message_link,
    product_inquiry_text,
)


class ProdDetailModal(ModalScreen[bool]):
    """
    prod detail, plus adding to cart or asking about it over chat
    Will return true if cart changed, false if not
    """

    order_qty = reactive(1)

    def __init__(self, pid: int) -> None:
        super().__init__()

        self._pid = pid
        self._prod: Product = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(
                        value="1",
                        id="input-order-qty",
                        type="integer",
                        validators=[Number(minimum=1)],
                    )
                    yield Button("+", id="btn-add-qty")
                yield Label("", id="label-in-cart")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Chat", id="btn-chat", variant="success")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        self._prod = await get_product(self._pid)
        if self._prod is None:
            self.notify("This product is no longer available.", severity="warning")
            self.dismiss(False)
            return

        table_rows = [
            ["Name", self._prod.name],
            ["Price", format_price(self._prod.price)],
            ["Stock", self._prod.stock],
            ["Image", self._prod.image or "-"],
            ["Added", self._prod.created_at],
        ]
        md_table_str = generate_markdown_table(["Attribute", "Value"], table_rows, ["l", "l"])
        header_md = f"### {self._prod.name}\n\n"
        await self.query_one(MarkdownViewer).document.update(header_md + md_table_str)

        in_cart = self.app.state.cart.quantity(self._pid)
        if in_cart:
            self.query_one("#label-in-cart", Label).update(f"Already in cart: {in_cart}")

        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    async def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int):
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty = max(1, self.order_qty - 1)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self):
        self.app.state.cart.add(self._pid, self.order_qty)
        self.app.notify(f"Added {self.order_qty} x {self._prod.name} to cart.")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-chat")
    def handle_chat(self):
        if self._prod is None:
            return
        self.app.open_url(
            message_link(config.SHOP_PHONE, product_inquiry_text(self._prod))
        )
