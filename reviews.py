"""
Review writes for a product's review collection.

No ownership checks are made on edit or delete: anyone holding a
product id / review id pair can change or remove that review.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.database import Database

from database import create_document, get_documents, serialize_doc
from schemas import Review, ReviewIn

logger = logging.getLogger(__name__)

COLLECTION = "reviews"


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def add_review(database: Database, product_id: str, review: ReviewIn, author_uid: Optional[str] = None) -> str:
    doc = Review(
        productId=product_id,
        date=datetime.now(timezone.utc).isoformat(),
        authorUid=author_uid,
        **review.model_dump(by_alias=True),
    )
    review_id = create_document(COLLECTION, doc.model_dump(by_alias=True, exclude_none=True), database)
    logger.info("Added review %s to product %s", review_id, product_id)
    return review_id


def update_review(database: Database, product_id: str, review_id: str, changes: Dict[str, Any]) -> bool:
    """Merge `changes` into the review. Returns False when no such review exists."""
    oid = _object_id(review_id)
    if oid is None:
        return False
    res = database[COLLECTION].update_one({"_id": oid, "productId": product_id}, {"$set": changes})
    if res.matched_count:
        logger.info("Updated review %s on product %s (%s)", review_id, product_id, ", ".join(sorted(changes)))
    return res.matched_count > 0


def delete_review(database: Database, product_id: str, review_id: str):
    oid = _object_id(review_id)
    if oid is None:
        return
    res = database[COLLECTION].delete_one({"_id": oid, "productId": product_id})
    logger.info("Deleted review %s on product %s (%d removed)", review_id, product_id, res.deleted_count)


def list_reviews(database: Database, product_id: str) -> List[Dict[str, Any]]:
    docs = get_documents(COLLECTION, {"productId": product_id}, sort=[("date", DESCENDING), ("_id", DESCENDING)],
                         database=database)
    return [serialize_doc(d) for d in docs]
