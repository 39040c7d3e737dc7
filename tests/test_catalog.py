import pytest

from catalog import Catalog
from errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from tests.conftest import ReadOnlyStore


@pytest.fixture
def shelf(catalog):
    catalog.create_book({"title": "Dune", "author": "Frank Herbert", "isbn": "111", "price": 12.5,
                         "category": "Science Fiction", "description": "Desert planet politics"})
    catalog.create_book({"title": "Emma", "author": "Jane Austen", "isbn": "222", "price": 8,
                         "category": "Fiction", "description": "A matchmaker in Highbury"})
    catalog.create_book({"title": "Persuasion", "author": "Jane Austen", "isbn": "333", "price": "9.5",
                         "category": "fiction", "description": "Second chances"})
    return catalog


def test_create_assigns_id_and_coerces(catalog):
    book = catalog.create_book({"title": "Dune", "author": "Herbert", "isbn": "111", "price": "12.50",
                                "stock": "4", "publicationYear": "1965"})
    assert book == {
        "id": 1,
        "title": "Dune",
        "author": "Herbert",
        "isbn": "111",
        "price": 12.5,
        "category": "Uncategorized",
        "description": "",
        "publicationYear": 1965,
        "publisher": "",
        "stock": 4,
        "coverImage": "",
    }
    assert catalog.get_book(1) == book


def test_create_defaults(catalog, dune):
    book = catalog.create_book({**dune, "category": "", "stock": "", "publicationYear": ""})
    assert book["category"] == "Uncategorized"
    assert book["stock"] == 0
    assert book["publicationYear"] is None


def test_ids_follow_max_existing(catalog, store):
    store.save("books", [{"id": 7, "title": "Old", "author": "A", "isbn": "9", "price": 1.0}])
    assert catalog.create_book({"title": "New", "author": "B", "isbn": "10", "price": 2})["id"] == 8


def test_ids_skip_records_without_an_id(catalog, store):
    store.save("books", [{"title": "Stray", "author": "A", "isbn": "9", "price": 1.0},
                         {"id": 3, "title": "Old", "author": "A", "isbn": "8", "price": 1.0}])
    assert catalog.create_book({"title": "New", "author": "B", "isbn": "10", "price": 2})["id"] == 4
    assert len(catalog.list_books()) == 3


@pytest.mark.parametrize("missing", ["title", "author", "isbn", "price"])
def test_create_requires_fields(catalog, dune, missing):
    fields = {k: v for k, v in dune.items() if k != missing}
    with pytest.raises(ValidationError, match="Missing required fields"):
        catalog.create_book(fields)


def test_create_rejects_bad_numbers(catalog, dune):
    with pytest.raises(ValidationError, match="price"):
        catalog.create_book({**dune, "price": "cheap"})
    with pytest.raises(ValidationError, match="price"):
        catalog.create_book({**dune, "price": -1})
    with pytest.raises(ValidationError, match="stock"):
        catalog.create_book({**dune, "stock": -3})


def test_duplicate_isbn_conflicts(catalog, dune):
    catalog.create_book(dune)
    with pytest.raises(ConflictError):
        catalog.create_book({**dune, "title": "Dune Messiah"})
    assert len(catalog.list_books()) == 1


def test_isbns_stay_unique(shelf):
    isbns = [b["isbn"] for b in shelf.list_books()]
    assert len(isbns) == len(set(isbns))


def test_search_is_case_insensitive(catalog, dune):
    created = catalog.create_book(dune)
    assert catalog.list_books(search="dune") == [created]


def test_search_matches_description(shelf):
    assert [b["title"] for b in shelf.list_books(search="HIGHBURY")] == ["Emma"]


def test_category_is_exact_match(shelf):
    assert [b["title"] for b in shelf.list_books(category="FICTION")] == ["Emma", "Persuasion"]
    assert shelf.list_books(category="fict") == []


def test_author_is_substring(shelf):
    assert [b["title"] for b in shelf.list_books(author="austen")] == ["Emma", "Persuasion"]


def test_filters_combine(shelf):
    assert [b["title"] for b in shelf.list_books(author="austen", search="second")] == ["Persuasion"]
    assert shelf.list_books(category="science fiction", author="austen") == []


def test_get_missing_book(catalog):
    with pytest.raises(NotFoundError):
        catalog.get_book(42)


def test_update_coerces_and_keeps_id(shelf):
    updated = shelf.update_book(1, {"price": "9.99", "id": 99, "stock": "3"})
    assert updated["price"] == 9.99
    assert isinstance(updated["price"], float)
    assert updated["stock"] == 3
    assert updated["id"] == 1
    assert updated["title"] == "Dune"
    assert shelf.get_book(1) == updated
    with pytest.raises(NotFoundError):
        shelf.get_book(99)


def test_update_missing_book(catalog):
    with pytest.raises(NotFoundError):
        catalog.update_book(5, {"title": "x"})


def test_update_to_taken_isbn_conflicts(shelf):
    with pytest.raises(ConflictError):
        shelf.update_book(1, {"isbn": "222"})
    assert shelf.update_book(1, {"isbn": "111"})["isbn"] == "111"


def test_delete_then_get_is_not_found(shelf):
    removed = shelf.delete_book(2)
    assert removed["title"] == "Emma"
    with pytest.raises(NotFoundError):
        shelf.get_book(2)
    with pytest.raises(NotFoundError):
        shelf.delete_book(2)


def test_failed_write_raises(tmp_path, dune):
    catalog = Catalog(ReadOnlyStore(str(tmp_path)))
    with pytest.raises(PersistenceError):
        catalog.create_book(dune)


def test_stock_report(catalog):
    catalog.create_book({"title": "A", "author": "x", "isbn": "1", "price": 2.0, "stock": 0})
    catalog.create_book({"title": "B", "author": "x", "isbn": "2", "price": 3.0, "stock": 4})
    catalog.create_book({"title": "C", "author": "x", "isbn": "3", "price": 1.5, "stock": 20})
    report = catalog.stock_report(threshold=10)
    assert report["totalTitles"] == 3
    assert report["totalStock"] == 24
    assert report["totalValue"] == 42.0
    assert report["lowStockCount"] == 2
    assert report["outOfStock"] == 1
    assert [i["status"] for i in report["items"]] == ["out-of-stock", "low-stock", "in-stock"]
