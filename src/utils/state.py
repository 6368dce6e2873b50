from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import db.crud as crud
from db.models import User
from utils.cart import CartState


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens; one per app session.

    Fields:
      - user: logged-in admin/staff user, None while browsing as a customer
      - cart: the customer's cart, lives as long as the session
    """

    user: Optional[User] = None
    cart: CartState = field(default_factory=CartState)

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    @property
    def is_staff(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    async def login(self, username: str, password: str) -> bool:
        """Check credentials against the users table. Returns True on success."""
        user = await crud.authenticate(username, password)
        if user is None:
            return False
        self.user = user
        return True

    def logout(self) -> None:
        """
        Drop the logged-in user. The cart belongs to the session, not the
        user, so it is kept.
        """
        self.user = None
