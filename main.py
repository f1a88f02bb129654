import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from auth import bearer_token, sign_in, sign_up, verify_token
from catalog import build_query, fetch_page
from database import get_db, serialize_doc
from reviews import add_review, delete_review, list_reviews, update_review
from schemas import Product as ProductSchema, ReviewIn, ReviewUpdate

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

REQUIRE_REVIEW_AUTH = os.getenv("REQUIRE_REVIEW_AUTH", "false").lower() in ("1", "true", "yes")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    database.close()


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------- Errors -----------------------
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        # int parts are list indexes or JSON byte offsets
        parts = [p for p in first.get("loc", ()) if not isinstance(p, int) and p not in ("body", "query", "path")]
        loc = ".".join(str(p) for p in parts)
        message = f"{loc}: {first.get('msg')}" if loc else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# ----------------------- Models -----------------------
class SignupBody(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginBody(BaseModel):
    email: EmailStr
    password: str


class ReviewCreateBody(BaseModel):
    productId: str = Field(..., min_length=1)
    review: ReviewIn
    token: Optional[str] = None


class ReviewUpdateBody(BaseModel):
    productId: str = Field(..., min_length=1)
    reviewId: str = Field(..., min_length=1)
    review: ReviewUpdate


class ReviewDeleteBody(BaseModel):
    productId: str = Field(..., min_length=1)
    reviewId: str = Field(..., min_length=1)


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Storefront API running"}


# ----------------------- Auth -----------------------
@app.post("/auth/signup")
def signup(body: SignupBody, db: Database = Depends(get_db)):
    try:
        return sign_up(db, body.name, body.email, body.password)
    except PyMongoError:
        logger.exception("Error creating account")
        raise HTTPException(status_code=500, detail="Failed to create account")


@app.post("/auth/login")
def login(body: LoginBody, db: Database = Depends(get_db)):
    try:
        return sign_in(db, body.email, body.password)
    except PyMongoError:
        logger.exception("Error signing in")
        raise HTTPException(status_code=500, detail="Failed to sign in")


@app.get("/auth/verify")
def verify(token: Optional[str] = Depends(bearer_token)):
    return {"message": "Authorized", "uid": verify_token(token)}


# ----------------------- Catalog -----------------------
@app.get("/categories")
def get_categories(db: Database = Depends(get_db)):
    try:
        doc = db["categories"].find_one({"_id": "allCategories"})
    except PyMongoError:
        logger.exception("Error fetching categories")
        raise HTTPException(status_code=500, detail="Failed to fetch categories")
    if not doc:
        raise HTTPException(status_code=404, detail="Categories not found")
    return {"categories": doc.get("categories", [])}


@app.get("/product/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    try:
        item = db["products"].find_one({"_id": product_id})
    except PyMongoError:
        logger.exception("Error fetching product %s", product_id)
        raise HTTPException(status_code=500, detail="Failed to fetch product")
    if not item:
        raise HTTPException(status_code=404, detail="Product not found")
    return serialize_doc(item)


@app.get("/product/{product_id}/reviews")
def get_product_reviews(product_id: str, db: Database = Depends(get_db)):
    try:
        return {"reviews": list_reviews(db, product_id)}
    except PyMongoError:
        logger.exception("Error fetching reviews for product %s", product_id)
        raise HTTPException(status_code=500, detail="Failed to fetch reviews")


@app.get("/products")
def list_products(
    page: Optional[str] = None,
    query: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: Optional[str] = Query("id", alias="sortBy"),
    order: Optional[str] = "asc",
    db: Database = Depends(get_db),
):
    q = build_query(page=page, sort_by=sort_by, order=order, category=category, search=query)
    try:
        return fetch_page(db["products"], q)
    except PyMongoError:
        logger.exception("Error fetching products (page=%s, query=%r, category=%r)", q.page, query, category)
        raise HTTPException(status_code=500, detail="Failed to fetch products")


# ----------------------- Reviews -----------------------
@app.post("/reviews")
def create_review(body: ReviewCreateBody, header_token: Optional[str] = Depends(bearer_token),
                  db: Database = Depends(get_db)):
    token = body.token or header_token
    author_uid = None
    if token or REQUIRE_REVIEW_AUTH:
        author_uid = verify_token(token)
    try:
        review_id = add_review(db, body.productId, body.review, author_uid)
    except PyMongoError:
        logger.exception("Error adding review to product %s", body.productId)
        raise HTTPException(status_code=500, detail="Failed to add review")
    return {"message": "Review added successfully", "id": review_id}


@app.put("/reviews")
def edit_review(body: ReviewUpdateBody, db: Database = Depends(get_db)):
    changes = body.review.changes()
    if not changes:
        raise HTTPException(status_code=400, detail="Review must include at least one field to update")
    try:
        found = update_review(db, body.productId, body.reviewId, changes)
    except PyMongoError:
        logger.exception("Error updating review %s", body.reviewId)
        raise HTTPException(status_code=500, detail="Failed to update review")
    if not found:
        raise HTTPException(status_code=404, detail="Review not found")
    return {"message": "Review updated successfully"}


@app.delete("/reviews")
def remove_review(body: ReviewDeleteBody, db: Database = Depends(get_db)):
    try:
        delete_review(db, body.productId, body.reviewId)
    except PyMongoError:
        logger.exception("Error deleting review %s", body.reviewId)
        raise HTTPException(status_code=500, detail="Failed to delete review")
    return {"message": "Review deleted successfully"}


# ----------------------- Seed Demo Data -----------------------
DEMO_CATEGORIES = ["beauty", "fragrances", "furniture", "groceries", "laptops", "smartphones"]

DEMO_PRODUCTS = [
    {
        "_id": "001",
        "title": "Essence Mascara Lash Princess",
        "category": "beauty",
        "price": 9.99,
        "description": "Volumizing and lengthening mascara with a long-lasting formula.",
        "tags": ["beauty", "mascara"],
        "rating": 4.94,
        "stock": 5,
        "images": ["https://cdn.dummyjson.com/products/images/beauty/Essence%20Mascara%20Lash%20Princess/1.png"],
    },
    {
        "_id": "002",
        "title": "Eyeshadow Palette with Mirror",
        "category": "beauty",
        "price": 19.99,
        "description": "Versatile range of eyeshadow shades with a built-in mirror.",
        "tags": ["beauty", "eyeshadow"],
        "rating": 3.28,
        "stock": 44,
        "images": ["https://cdn.dummyjson.com/products/images/beauty/Eyeshadow%20Palette%20with%20Mirror/1.png"],
    },
    {
        "_id": "003",
        "title": "Calvin Klein CK One",
        "category": "fragrances",
        "price": 49.99,
        "description": "Clean and fresh unisex fragrance.",
        "tags": ["fragrances", "perfumes"],
        "rating": 4.85,
        "stock": 17,
        "images": ["https://cdn.dummyjson.com/products/images/fragrances/Calvin%20Klein%20CK%20One/1.png"],
    },
    {
        "_id": "004",
        "title": "Annibale Colombo Sofa",
        "category": "furniture",
        "price": 2499.99,
        "description": "Luxurious sofa crafted with high-quality materials.",
        "tags": ["furniture", "sofas"],
        "rating": 3.08,
        "stock": 9,
        "images": ["https://cdn.dummyjson.com/products/images/furniture/Annibale%20Colombo%20Sofa/1.png"],
    },
    {
        "_id": "005",
        "title": "Apple",
        "category": "groceries",
        "price": 1.99,
        "description": "Fresh and crisp apples.",
        "tags": ["fruits"],
        "rating": 4.19,
        "stock": 8,
        "images": ["https://cdn.dummyjson.com/products/images/groceries/Apple/1.png"],
    },
    {
        "_id": "006",
        "title": "Apple MacBook Pro 14 Inch Space Grey",
        "category": "laptops",
        "price": 1999.99,
        "description": "Powerful laptop with Apple silicon.",
        "tags": ["laptops", "apple"],
        "rating": 3.65,
        "stock": 24,
        "images": ["https://cdn.dummyjson.com/products/images/laptops/Apple%20MacBook%20Pro%2014%20Inch%20Space%20Grey/1.png"],
    },
    {
        "_id": "007",
        "title": "iPhone 9",
        "category": "smartphones",
        "price": 549.0,
        "description": "An apple mobile which is nothing like apple.",
        "tags": ["smartphones", "apple"],
        "rating": 4.69,
        "images": ["https://cdn.dummyjson.com/products/images/smartphones/iPhone%209/1.png"],
    },
]


@app.post("/seed")
def seed(db: Database = Depends(get_db)):
    try:
        db["categories"].update_one(
            {"_id": "allCategories"}, {"$setOnInsert": {"categories": DEMO_CATEGORIES}}, upsert=True
        )
        if db["products"].count_documents({}) > 0:
            return {"seeded": False, "message": "Products already exist"}
        for p in DEMO_PRODUCTS:
            prod = ProductSchema(**p)
            db["products"].insert_one(prod.model_dump(by_alias=True, exclude_none=True))
        return {"seeded": True, "products": db["products"].count_documents({})}
    except PyMongoError:
        logger.exception("Error seeding demo data")
        raise HTTPException(status_code=500, detail="Failed to seed demo data")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
