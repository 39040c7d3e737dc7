"""
Shopping cart kept on the client for one session.

Nothing here touches the server until checkout turns the cart into an
order payload (see ``BookstoreClient.checkout``).
"""
from typing import Any, Dict, List, Optional

from schemas import utcnow_iso


class Cart:
    def __init__(self):
        self.items: List[Dict[str, Any]] = []

    def _find(self, book_id: int) -> Optional[Dict[str, Any]]:
        return next((item for item in self.items if item["id"] == book_id), None)

    def add(self, book: Dict[str, Any], quantity: int = 1) -> None:
        existing = self._find(book["id"])
        if existing:
            existing["quantity"] += quantity
            return
        self.items.append({**book, "quantity": quantity})

    def remove(self, book_id: int) -> None:
        self.items = [item for item in self.items if item["id"] != book_id]

    def update_quantity(self, book_id: int, quantity: int) -> None:
        if quantity <= 0:
            self.remove(book_id)
            return
        existing = self._find(book_id)
        if existing:
            existing["quantity"] = quantity

    def clear(self) -> None:
        self.items = []

    def total_price(self) -> float:
        return round(sum(item["price"] * item["quantity"] for item in self.items), 2)

    def total_items(self) -> int:
        return sum(item["quantity"] for item in self.items)

    def __len__(self):
        return len(self.items)

    def to_order(self, shipping_address=None) -> Dict[str, Any]:
        """Order payload with a frozen snapshot of each line."""
        return {
            "orderDate": utcnow_iso(),
            "total": self.total_price(),
            "items": [
                {
                    "bookId": item["id"],
                    "title": item.get("title", ""),
                    "author": item.get("author", ""),
                    "price": item["price"],
                    "quantity": item["quantity"],
                }
                for item in self.items
            ],
            "shippingAddress": shipping_address,
        }
