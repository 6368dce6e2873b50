# provide dataclass models

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class User:
    id: int
    username: str
    password: str  # bcrypt hash
    role: str  # "admin" or "staff"
    created_at: str


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: int  # smallest currency unit
    image: str
    stock: int
    created_at: str


@dataclass(frozen=True)
class Order:
    id: int
    cust_name: str
    cust_contact: str
    address: str
    payment: str  # "COD", "Transfer" or free text
    total: int
    created_at: str


@dataclass(frozen=True)
class OrderItem:
    id: int
    order_id: int
    product_id: int  # may point to a deleted product
    name: str  # snapshot at purchase time
    price: int  # snapshot at purchase time
    qty: int
    sub_total: int


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    contact: str
    address: str
    payment: str = "COD"


@dataclass(frozen=True)
class OrderReceipt:
    """Message payload handed to the messaging collaborator."""

    order_id: int
    lines: Tuple[str, ...]
    total: str
    customer: CustomerInfo
    header: str = field(default="")

    def as_text(self) -> str:
        parts = []
        if self.header:
            parts += [self.header, ""]
        parts += self.lines
        parts += [
            f"Total: {self.total}",
            f"Name: {self.customer.name}",
            f"Contact: {self.customer.contact}",
            f"Address: {self.customer.address}",
            f"Payment: {self.customer.payment}",
        ]
        return "\n".join(parts)
