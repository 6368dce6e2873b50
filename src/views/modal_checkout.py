from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

from db.crud import checkout, get_products
from db.errors import CheckoutError, ValidationError
from db.models import CustomerInfo
from utils import config
from utils.pure import format_price, generate_markdown_table, message_link
from views.modal_dialog import DialogModal, MessagePreviewModal

PAYMENT_METHODS = ["COD", "Transfer"]


class CheckoutModal(ModalScreen[Optional[int]]):
    """
    A modal screen for check out: order summary plus the customer's details.
    Returns the new order id on success, None otherwise.
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Name")
            yield Input(placeholder="Budi", id="input-name")
            yield Label("Chat Number")
            yield Input(placeholder="62812...", id="input-contact")
            yield Label("Address")
            yield Input(placeholder="Jl. Merdeka 1, Cirebon", id="input-address")
            yield Label("Payment Method")
            yield Select(
                [(m, m) for m in PAYMENT_METHODS],
                value=PAYMENT_METHODS[0],
                allow_blank=False,
                id="select-payment",
            )
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        # generate the order summary
        cart = self.app.state.cart
        prods = await get_products(cart.product_ids())
        headers = ["Product Name", "Unit Price", "Quantity", "Subtotal"]
        rows = [
            [
                prods[pid].name,
                format_price(prods[pid].price),
                qty,
                format_price(prods[pid].price * qty),
            ]
            for pid, qty in cart.items()
            if pid in prods
        ]
        total_cost = sum(prods[pid].price * qty for pid, qty in cart.items() if pid in prods)
        md = "### Order Summary\n\n"
        md += generate_markdown_table(headers, rows, ["l", "r", "c", "r"])
        md += f"\n\n**Total:** {format_price(total_cost)}"
        await self.query_one(MarkdownViewer).document.update(md)
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _customer(self) -> CustomerInfo:
        return CustomerInfo(
            name=self.query_one("#input-name", Input).value,
            contact=self.query_one("#input-contact", Input).value,
            address=self.query_one("#input-address", Input).value,
            payment=str(self.query_one("#select-payment", Select).value),
        )

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        customer = self._customer()
        for input_id, value in (
            ("#input-name", customer.name),
            ("#input-contact", customer.contact),
            ("#input-address", customer.address),
        ):
            if not value.strip():
                field = self.query_one(input_id, Input)
                field.focus()
                field.add_class("-invalid")
                self.notify("All fields are required.", severity="error")
                return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            receipt = await checkout(self.app.state.cart, customer)
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return
        except CheckoutError as e:
            # cart is untouched, the customer can retry
            self.notify(str(e), severity="error")
            return

        text = receipt.as_text()
        if await self.app.push_screen_wait(
            MessagePreviewModal(f"Order #{receipt.order_id} placed.", text)
        ):
            self.app.open_url(message_link(config.SHOP_PHONE, text))
        self.dismiss(receipt.order_id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
