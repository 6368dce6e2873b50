from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from db import crud
from db.database import get_dialect
from db.dialects import STORAGE_ERRORS
from db.errors import SchemaError
from utils.logger import get_logger
from utils.messages import (
    ModeSwitchedMessage,
    NewOrderMessage,
    QuitRequestedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import GlobalState
from views.base_screen import BaseScreen
from views.scr_cart import CartScreen
from views.scr_catalog import CatalogScreen
from views.scr_manage_products import ManageProductsScreen
from views.scr_sales_report import SalesReportScreen
from views.scr_users import UsersScreen

_logger = get_logger(__name__)


class StorefrontApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "catalog": CatalogScreen,
        "cart": CartScreen,
        "products": ManageProductsScreen,
        "report": SalesReportScreen,
        "users": UsersScreen,
    }

    CUSTOMER_MODES = {"catalog": "Catalog", "cart": "Cart"}
    STAFF_MODES = {"products": "Manage Products", "report": "Sales Report"}
    ADMIN_MODES = {"users": "Users"}

    CSS_PATH = [
        "views/styles/index.tcss",
        "views/styles/catalog.tcss",
        "views/styles/cart.tcss",
        "views/styles/admin.tcss",
    ]

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def available_modes(self) -> dict:
        """Menu entries for whoever is using the app right now."""
        modes = dict(self.CUSTOMER_MODES)
        if self.state.is_staff:
            modes.update(self.STAFF_MODES)
        if self.state.is_admin:
            modes.update(self.ADMIN_MODES)
        return modes

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    async def goto_mode(self, mode: str) -> None:
        if self.current_mode != mode:
            self.post_message(ModeSwitchedMessage(self.current_mode, mode))
            await self.switch_mode(mode)

    @on(UserLoginMessage)
    async def handle_user_login(self):
        await self.goto_mode("report")

    @on(UserLogoutMessage)
    async def handle_user_logout(self):
        self.state.logout()
        self.notify("Logout successful.")
        await self.goto_mode("catalog")
        # catalog may already be active, so no ScreenResume
        if isinstance(self.screen, BaseScreen):
            await self.screen.refresh_sidebar()

    @on(ModeSwitchedMessage)
    def handle_mode_switched(self, message: ModeSwitchedMessage):
        _logger.debug(f"Mode {message.old_mode} -> {message.new_mode}")

    @on(NewOrderMessage)
    def handle_new_order(self, message: NewOrderMessage):
        self.notify(f"Order #{message.order_id} saved.")

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()

    @work
    async def main_flow(self):
        # provision the schema before any screen talks to the db
        try:
            counts = await crud.table_counts()
        except (SchemaError, *STORAGE_ERRORS) as e:
            _logger.error(f"Startup failed on {get_dialect().describe()}: {e}")
            self.exit(return_code=1, message=f"Database error: {e}")
            return
        _logger.info(f"Database ready: {counts}")
        await self.goto_mode("catalog")


def run() -> None:
    app = StorefrontApp()
    app.run()


if __name__ == "__main__":
    run()
