"""Unit tests for the catalog query layer."""

from __future__ import annotations

import pytest
from pymongo import ASCENDING, DESCENDING

from catalog import (
    MAX_CHAR,
    PAGE_SIZE,
    ProductQuery,
    assemble_page,
    build_query,
    coerce_page,
    fetch_page,
    resolve_cursor,
)
from tests.utils import make_product


class TestBuildQuery:
    """Tests for translating request parameters into a store query."""

    def test_defaults(self):
        q = build_query()

        assert q.page == 1
        assert q.filter == {}
        assert q.sort == [("_id", ASCENDING)]
        assert q.limit == PAGE_SIZE

    def test_search_is_prefix_range_on_title(self):
        q = build_query(search="App")

        assert q.filter == {"title": {"$gte": "App", "$lte": "App" + MAX_CHAR}}

    def test_category_is_equality(self):
        q = build_query(category="laptops")

        assert q.filter == {"category": "laptops"}

    def test_search_and_category_combine(self):
        q = build_query(search="Mac", category="laptops")

        assert q.filter["category"] == "laptops"
        assert q.filter["title"]["$gte"] == "Mac"

    def test_empty_strings_add_no_filter(self):
        assert build_query(search="", category="").filter == {}

    def test_id_sort_ignores_desc(self):
        q = build_query(sort_by="id", order="desc")

        assert q.sort == [("_id", ASCENDING)]

    @pytest.mark.parametrize(
        ("order", "direction"),
        [("asc", ASCENDING), ("desc", DESCENDING), ("sideways", ASCENDING), (None, ASCENDING)],
    )
    def test_price_sort_follows_order(self, order, direction):
        q = build_query(sort_by="price", order=order)

        assert q.sort == [("price", direction), ("_id", direction)]

    def test_unknown_sort_field_falls_back_to_id(self):
        assert build_query(sort_by="rating", order="desc").sort == [("_id", ASCENDING)]

    @pytest.mark.parametrize(
        ("raw", "page"),
        [(None, 1), ("", 1), ("abc", 1), ("0", 1), ("-4", 1), ("2.5", 1), ("3", 3), (7, 7)],
    )
    def test_page_coercion(self, raw, page):
        assert coerce_page(raw) == page
        assert build_query(page=raw).page == page


class TestStartAfter:
    """Tests for the keyset predicate used as a forward cursor."""

    def test_id_sort(self):
        q = ProductQuery()

        assert q.start_after({"_id": "020"}) == {"_id": {"$gt": "020"}}

    def test_price_desc_breaks_ties_on_id(self):
        q = build_query(sort_by="price", order="desc")

        assert q.start_after({"_id": "007", "price": 5.0}) == {
            "$or": [
                {"price": {"$lt": 5.0}},
                {"price": 5.0, "_id": {"$lt": "007"}},
            ]
        }

    def test_filter_is_kept(self):
        q = build_query(category="phones")

        assert q.start_after({"_id": "003"}) == {
            "$and": [{"category": "phones"}, {"_id": {"$gt": "003"}}]
        }


class TestResolveCursor:
    """Tests for finding the document page N starts after."""

    def test_page_one_has_no_cursor(self, db, catalog):
        assert resolve_cursor(db["products"], build_query(page=1)) is None

    def test_marker_is_last_document_of_previous_pages(self, db, catalog):
        marker = resolve_cursor(db["products"], build_query(page=2))

        assert marker["_id"] == "020"

    def test_marker_respects_filter(self, db, catalog):
        # phones are every third product: 003, 006, ... the 20th is 060 > 045,
        # so only 15 exist and the marker is the last of them
        marker = resolve_cursor(db["products"], build_query(page=2, category="phones"))

        assert marker["_id"] == "045"

    def test_no_documents_means_no_cursor(self, db):
        assert resolve_cursor(db["products"], build_query(page=3)) is None



class TestAssemblePage:
    """Tests for mapping documents to the response shape."""

    def test_full_page_reports_last_id(self):
        docs = [make_product(n) for n in range(1, PAGE_SIZE + 1)]

        page = assemble_page(docs)

        assert [p["id"] for p in page["products"]] == [f"{n:03d}" for n in range(1, PAGE_SIZE + 1)]
        assert page["lastDoc"] == "020"
        assert "_id" not in page["products"][0]

    def test_short_page_has_no_next(self):
        page = assemble_page([make_product(1), make_product(2)])

        assert len(page["products"]) == 2
        assert page["lastDoc"] is None

    def test_empty_page(self):
        assert assemble_page([]) == {"products": [], "lastDoc": None}

    def test_optional_fields_stay_absent(self):
        page = assemble_page([make_product(1)])

        assert "rating" not in page["products"][0]
        assert "stock" not in page["products"][0]


class TestFetchPage:
    """Tests for reading a whole page."""

    def test_pages_do_not_overlap(self, db, catalog):
        coll = db["products"]
        first = fetch_page(coll, build_query(page=1, sort_by="price", order="asc"))
        second = fetch_page(coll, build_query(page=2, sort_by="price", order="asc"))
        third = fetch_page(coll, build_query(page=3, sort_by="price", order="asc"))

        ids = [p["id"] for page in (first, second, third) for p in page["products"]]
        assert len(ids) == 45
        assert len(set(ids)) == 45
        keys = [(p["price"], p["id"]) for page in (first, second, third) for p in page["products"]]
        assert keys == sorted(keys)
        assert third["lastDoc"] is None

    def test_page_past_the_end_is_empty(self, db, catalog):
        assert fetch_page(db["products"], build_query(page=10)) == {"products": [], "lastDoc": None}
