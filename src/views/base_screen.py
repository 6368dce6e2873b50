from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.messages import (
    CartChangedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal


class Sidebar(Container):
    def compose(self) -> ComposeResult:
        yield Label("Session", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Staff Login", id="btn-login", variant="primary")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    @work(exclusive=True, group="sidebar")
    async def rebuild(self) -> None:
        """Refresh session info and menu entries from the app state."""
        state = self.app.state
        table_rows = [["Cart Items", state.cart.total_item_count()]]
        if state.user:
            table_rows += [
                ["User", state.user.username],
                ["Role", state.user.role.capitalize()],
            ]
        else:
            table_rows.append(["Role", "Customer"])
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        self.query_one("#btn-login").display = not state.is_staff
        self.query_one("#btn-logout").display = state.is_staff

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(v), id="list-menu-item-" + k)
                for k, v in self.app.available_modes().items()
            ]
        )
        self.highlight_item(self.app.current_mode)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.app.current_mode)
        await self.app.goto_mode(selected_mode)

    @on(Button.Pressed, "#btn-login")
    @work
    async def handle_login(self):
        # imported here, the login screen itself derives from BaseScreen
        from views.scr_login import LoginScreen

        if await self.app.push_screen_wait(LoginScreen()):
            self.app.post_message(UserLoginMessage())

    @on(Button.Pressed, "#btn-logout")
    @work
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.app.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    # None means every visitor may open the screen
    REQUIRED_ROLE = None

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "Storefront",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        :return:
        """

        # auto gen titles and subtitles
        self.app.title = "Storefront"
        self.sub_title = header_sub_title
        all_modes = {
            **self.app.CUSTOMER_MODES,
            **self.app.STAFF_MODES,
            **self.app.ADMIN_MODES,
        }
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in all_modes:
                self.sub_title = all_modes[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    def allowed(self) -> bool:
        state = self.app.state
        if self.REQUIRED_ROLE == "staff":
            return state.is_staff
        if self.REQUIRED_ROLE == "admin":
            return state.is_admin
        return True

    @on(ScreenResume)
    @on(CartChangedMessage)
    async def refresh_sidebar(self) -> None:
        if not self.allowed():
            self.notify("Please log in as staff first.", severity="warning")
            await self.app.goto_mode("catalog")
            return
        if self._show_sidebar:
            self.query_one(Sidebar).rebuild()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
