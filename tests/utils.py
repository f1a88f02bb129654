"""Test data helpers.

Usage:
    from tests.utils import make_product

    db["products"].insert_one(make_product(7, category="phones"))
"""

from __future__ import annotations


def make_product(n: int, **fields) -> dict:
    """Product document with id ``f"{n:03d}"``; keyword arguments override fields."""
    doc = {
        "_id": f"{n:03d}",
        "title": f"Product {n:03d}",
        "category": "misc",
        "price": float(n),
        "description": f"Description {n}",
        "tags": ["misc"],
        "images": [f"https://img.example.com/{n}.png"],
    }
    doc.update(fields)
    return doc
