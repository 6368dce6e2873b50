from __future__ import annotations

from typing import Dict, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Input, Label, Select

import db.crud as crud
from db.errors import ValidationError
from db.models import User
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal


class UserFormModal(ModalScreen[bool]):
    """
    Add a user, or edit one when `user` is given (blank password keeps the
    current one). Returns True if something was saved.
    """

    def __init__(self, user: Optional[User] = None) -> None:
        super().__init__()
        self.user = user

    def compose(self) -> ComposeResult:
        with Vertical(id="div-user-form"):
            yield Label(
                f"Edit User #{self.user.id}" if self.user else "Add User", id="caption"
            )
            yield Label("Username")
            yield Input(self.user.username if self.user else "", id="input-username")
            yield Label("Password")
            yield Input(
                password=True,
                placeholder="leave blank to keep" if self.user else "",
                id="input-password",
            )
            yield Label("Role")
            yield Select(
                [(r.capitalize(), r) for r in crud.ROLES],
                value=self.user.role if self.user else "staff",
                allow_blank=False,
                id="select-role",
            )
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Save", id="btn-save", variant="success")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        username = self.query_one("#input-username", Input).value
        password = self.query_one("#input-password", Input).value
        role = str(self.query_one("#select-role", Select).value)
        try:
            if self.user:
                await crud.update_user(self.user.id, username, password or None, role)
            else:
                await crud.create_user(username, password, role)
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return
        self.notify("User saved.")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(False)


class UsersScreen(BaseScreen):
    """
    Admins manage staff accounts.
    """

    REQUIRED_ROLE = "admin"

    def __init__(self) -> None:
        super().__init__()
        self._users: Dict[int, User] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-users")
            with Horizontal(id="hort-controls"):
                yield Button("Add", id="btn-add", variant="success")
                yield Button("Edit", id="btn-edit", variant="primary")
                yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Username", "Role", "Created")

    @on(ScreenResume)
    @work(exclusive=True)
    async def reload(self) -> None:
        users = await crud.list_users()
        self._users = {u.id: u for u in users}
        table = self.query_one(DataTable)
        table.clear()
        table.add_rows([(u.id, u.username, u.role, u.created_at) for u in users])

    def selected(self) -> Optional[User]:
        table = self.query_one(DataTable)
        if not table.row_count:
            return None
        return self._users.get(int(table.get_row_at(table.cursor_row)[0]))

    @on(Button.Pressed, "#btn-add")
    @work()
    async def handle_add(self) -> None:
        if await self.app.push_screen_wait(UserFormModal()):
            self.reload()

    @on(Button.Pressed, "#btn-edit")
    @work()
    async def handle_edit(self) -> None:
        user = self.selected()
        if user is None:
            return
        if await self.app.push_screen_wait(UserFormModal(user)):
            self.reload()

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        user = self.selected()
        if user is None:
            return
        if user.id == self.app.state.user.id:
            self.notify("You cannot delete yourself.", severity="warning")
            return
        if await self.app.push_screen_wait(
            DialogModal(
                f"Delete user {user.username}?",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            await crud.delete_user(user.id)
            self.reload()
