from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, Rule

from db.crud import get_products
from db.models import Product
from utils.messages import CartChangedMessage, NewOrderMessage
from utils.pure import format_price
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartItemWidget(HorizontalGroup):
    """One cart line with an editable quantity; 0 removes it on update."""

    def __init__(self, prod: Product, qty: int):
        super().__init__()
        self.prod = prod
        self.qty = qty

    def compose(self):
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(self.prod.name, id="label-item-name")
                yield Input(
                    str(self.qty),
                    type="integer",
                    id=f"input-qty-{self.prod.id}",
                    classes="input-item-qty",
                )
                yield Label(
                    format_price(self.prod.price * self.qty), id="label-item-price"
                )


class CartScreen(BaseScreen):
    """
    cart review: edit quantities, clear, checkout
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Total: -", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Update", id="btn-update")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    @on(CartChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # must exclusive, else might race cond and gen duplicate
    async def handle_cart_change(self):
        cart = self.app.state.cart
        products = await get_products(cart.product_ids())

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        # products deleted since they were added are not shown
        entries = [
            CartItemWidget(products[pid], qty)
            for pid, qty in cart.items()
            if pid in products
        ]
        await content.mount_all(entries)

        if not entries:
            content.add_class("no-items")
        else:
            content.remove_class("no-items")

        total_value = sum(w.prod.price * w.qty for w in entries)
        self.query_one("#label-cart-total", Label).update(
            f"Total: {format_price(total_value)}"
        )

    @on(Button.Pressed, "#btn-update")
    def handle_update(self) -> None:
        quantities = {
            w.prod.id: self.query_one(f"#input-qty-{w.prod.id}", Input).value
            for w in self.query(CartItemWidget)
        }
        self.app.state.cart.set_quantities(quantities)
        self.notify("Cart updated.")
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if not self.app.state.cart:
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            self.app.state.cart.clear()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        """
        Open up checkout dialog
        """
        if not self.app.state.cart:
            self.app.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        if order_id:
            self.post_message(NewOrderMessage(order_id))
        self.post_message(CartChangedMessage())
