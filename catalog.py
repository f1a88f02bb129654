"""
Product catalog queries.

Listing is paginated with forward cursors only: the store can "start after"
a document but cannot skip to an offset. Page N therefore re-reads the first
(N-1) * PAGE_SIZE documents of the same filtered/sorted query to find the
document to start after. That costs O(N) reads per page and is fine for a
small catalog. Inserts or deletes landing between the two reads can shift
items across a page boundary; callers get no stronger guarantee than that.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

from database import serialize_doc

PAGE_SIZE = 20
SORT_FIELDS = {"id": "_id", "price": "price"}
# Highest code point; s <= title <= s + MAX_CHAR is a "starts with s" range
MAX_CHAR = "\U0010ffff"


@dataclass
class ProductQuery:
    page: int = 1
    filter: Dict[str, Any] = field(default_factory=dict)
    sort: List[Tuple[str, int]] = field(default_factory=lambda: [("_id", ASCENDING)])
    limit: int = PAGE_SIZE

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def start_after(self, marker: Dict[str, Any]) -> Dict[str, Any]:
        """Filter for documents strictly after `marker` in this query's sort order."""
        clauses = []
        for i, (key, direction) in enumerate(self.sort):
            clause = {prev: marker.get(prev) for prev, _ in self.sort[:i]}
            clause[key] = {"$gt" if direction == ASCENDING else "$lt": marker.get(key)}
            clauses.append(clause)
        keyset = clauses[0] if len(clauses) == 1 else {"$or": clauses}
        if not self.filter:
            return keyset
        return {"$and": [self.filter, keyset]}


def coerce_page(value) -> int:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def build_query(page=1, sort_by: Optional[str] = "id", order: Optional[str] = "asc",
                category: Optional[str] = None, search: Optional[str] = None) -> ProductQuery:
    filt: Dict[str, Any] = {}
    if search:
        filt["title"] = {"$gte": search, "$lte": search + MAX_CHAR}
    if category:
        filt["category"] = category

    if sort_by not in SORT_FIELDS:
        sort_by = "id"
    if sort_by == "id":
        # identifier order is the stable default view and is never reversed
        sort = [("_id", ASCENDING)]
    else:
        direction = DESCENDING if order == "desc" else ASCENDING
        sort = [(SORT_FIELDS[sort_by], direction), ("_id", direction)]

    return ProductQuery(page=coerce_page(page), filter=filt, sort=sort)


def resolve_cursor(collection: Collection, query: ProductQuery) -> Optional[Dict[str, Any]]:
    """Return the document the requested page starts after, or None.

    None means either page 1 or a page that lies past the end of the results;
    `fetch_page` tells the two apart by the page number.
    """
    if query.page <= 1:
        return None

    projection = {key: 1 for key, _ in query.sort}
    previous = list(collection.find(query.filter, projection).sort(query.sort).limit(query.skip))
    if not previous:
        return None
    return previous[-1]


def assemble_page(docs: List[Dict[str, Any]], page_size: int = PAGE_SIZE) -> Dict[str, Any]:
    products = [serialize_doc(doc) for doc in docs]
    last_doc = products[-1]["id"] if products and len(products) >= page_size else None
    return {"products": products, "lastDoc": last_doc}


def fetch_page(collection: Collection, query: ProductQuery) -> Dict[str, Any]:
    marker = resolve_cursor(collection, query)
    if marker is None and query.page > 1:
        return assemble_page([])

    filt = query.start_after(marker) if marker is not None else query.filter
    docs = list(collection.find(filt).sort(query.sort).limit(query.limit))
    return assemble_page(docs, query.limit)
