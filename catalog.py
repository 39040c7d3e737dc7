"""
Book catalog: CRUD plus filtering over the ``books`` collection.

Every operation loads the whole collection, works on it in memory and
writes it back whole.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaError

import config
from errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from schemas import Book

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "author", "isbn", "price")


def _build(record: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return Book(**record).model_dump()
    except SchemaError as e:
        raise ValidationError.from_schema(e)


class Catalog:
    collection = "books"

    def __init__(self, store):
        self.store = store

    def _load(self) -> List[Dict[str, Any]]:
        return self.store.load(self.collection)

    def _save(self, books: List[Dict[str, Any]], failure: str) -> None:
        if not self.store.save(self.collection, books):
            raise PersistenceError(failure)

    def list_books(
        self,
        category: Optional[str] = None,
        author: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        books = self._load()
        if category:
            books = [b for b in books if (b.get("category") or "").lower() == category.lower()]
        if author:
            books = [b for b in books if author.lower() in (b.get("author") or "").lower()]
        if search:
            term = search.lower()
            books = [
                b for b in books
                if term in (b.get("title") or "").lower() or term in (b.get("description") or "").lower()
            ]
        return books

    def get_book(self, book_id: int) -> Dict[str, Any]:
        for book in self._load():
            if book.get("id") == book_id:
                return book
        raise NotFoundError("Book not found")

    def create_book(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        if any(fields.get(f) in (None, "") for f in REQUIRED_FIELDS):
            raise ValidationError("Missing required fields: title, author, isbn, price")

        books = self._load()
        isbn = str(fields["isbn"])
        if any(str(b.get("isbn")) == isbn for b in books):
            logger.info("Rejected duplicate ISBN %s", isbn)
            raise ConflictError("A book with this ISBN already exists")

        new_id = max(b.get("id") or 0 for b in books) + 1 if books else 1
        record = {k: v for k, v in fields.items() if k in Book.model_fields}
        new_book = _build({**record, "id": new_id})

        books.append(new_book)
        self._save(books, "Failed to create book")
        logger.info("Created book %s (%s)", new_id, new_book["title"])
        return new_book

    def update_book(self, book_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        books = self._load()
        index = next((i for i, b in enumerate(books) if b.get("id") == book_id), None)
        if index is None:
            raise NotFoundError("Book not found")

        changes = {k: v for k, v in fields.items() if k in Book.model_fields and k != "id"}
        if "isbn" in changes:
            isbn = str(changes["isbn"])
            if any(str(b.get("isbn")) == isbn and b.get("id") != book_id for b in books):
                raise ConflictError("A book with this ISBN already exists")

        updated = _build({**books[index], **changes, "id": book_id})
        books[index] = updated
        self._save(books, "Failed to update book")
        return updated

    def delete_book(self, book_id: int) -> Dict[str, Any]:
        books = self._load()
        index = next((i for i, b in enumerate(books) if b.get("id") == book_id), None)
        if index is None:
            raise NotFoundError("Book not found")
        removed = books.pop(index)
        self._save(books, "Failed to delete book")
        logger.info("Deleted book %s", book_id)
        return removed

    def reset(self) -> None:
        self._save([], "Failed to reset catalog")
        logger.warning("Catalog cleared")

    def stock_report(self, threshold: int = config.LOW_STOCK_THRESHOLD) -> Dict[str, Any]:
        """Inventory summary for the staff stocktake view."""
        books = self._load()
        items = []
        for b in books:
            stock = b.get("stock") or 0
            if stock == 0:
                status = "out-of-stock"
            elif stock < threshold:
                status = "low-stock"
            else:
                status = "in-stock"
            items.append({
                "id": b.get("id"),
                "title": b.get("title"),
                "author": b.get("author"),
                "isbn": b.get("isbn"),
                "category": b.get("category"),
                "price": b.get("price"),
                "stock": stock,
                "status": status,
            })
        return {
            "threshold": threshold,
            "totalTitles": len(books),
            "totalStock": sum(i["stock"] for i in items),
            "totalValue": round(sum((i["price"] or 0) * i["stock"] for i in items), 2),
            "lowStockCount": sum(1 for i in items if i["stock"] < threshold),
            "outOfStock": sum(1 for i in items if i["stock"] == 0),
            "items": items,
        }
