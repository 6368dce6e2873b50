from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Optional, Tuple


def to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


class CartState:
    """
    Product id -> quantity for one customer session.

    Quantities are always >= 1; anything that would drop to zero is removed.
    Nothing here touches the database, stock is not checked.
    """

    def __init__(self, entries: Optional[Mapping] = None) -> None:
        self._entries: Dict[int, int] = {}
        if entries:
            self.set_quantities(entries)

    def add(self, product_id, qty=1) -> None:
        """Add `qty` (at least 1) of a product. Invalid ids are ignored."""
        pid = to_int(product_id)
        if pid is None or pid <= 0:
            return
        qty = max(1, to_int(qty) or 0)
        self._entries[pid] = self._entries.get(pid, 0) + qty

    def set_quantities(self, quantities: Mapping) -> None:
        """Replace the whole cart, dropping entries with qty <= 0."""
        new: Dict[int, int] = {}
        for product_id, qty in quantities.items():
            pid, q = to_int(product_id), to_int(qty)
            if pid is None or pid <= 0 or q is None or q <= 0:
                continue
            new[pid] = q
        self._entries = new

    def remove(self, product_id) -> None:
        self._entries.pop(to_int(product_id), None)

    def clear(self) -> None:
        self._entries.clear()

    def quantity(self, product_id) -> int:
        return self._entries.get(to_int(product_id), 0)

    def total_item_count(self) -> int:
        return sum(self._entries.values())

    def product_ids(self) -> List[int]:
        return list(self._entries)

    def items(self) -> List[Tuple[int, int]]:
        return list(self._entries.items())

    def as_dict(self) -> Dict[int, int]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._entries))

    def __contains__(self, product_id) -> bool:
        return to_int(product_id) in self._entries

    def __repr__(self) -> str:
        return f"CartState({self._entries!r})"
