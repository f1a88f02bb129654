"""
Database Schemas for the Storefront

Each Pydantic model corresponds to one MongoDB collection.
Reviews keep the camelCase field names the storefront client sends and reads.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr
    password_hash: str = Field(..., description="Hashed password")
    created_at: Optional[datetime] = None


class Product(BaseModel):
    id: str = Field(..., alias="_id", description="Product identifier, e.g. '001'")
    title: str
    category: str
    price: float = Field(..., ge=0)
    description: str = ""
    tags: List[str] = []
    rating: Optional[float] = Field(None, ge=0, le=5)
    stock: Optional[int] = Field(None, ge=0)
    images: List[str] = []

    model_config = ConfigDict(populate_by_name=True)


class ReviewIn(BaseModel):
    """Review fields a client submits."""
    comment: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    reviewer_name: str = Field(..., alias="reviewerName", min_length=1)
    reviewer_email: EmailStr = Field(..., alias="reviewerEmail")

    model_config = ConfigDict(populate_by_name=True)


class ReviewUpdate(BaseModel):
    comment: Optional[str] = Field(None, min_length=1)
    rating: Optional[int] = Field(None, ge=1, le=5)
    reviewer_name: Optional[str] = Field(None, alias="reviewerName", min_length=1)
    reviewer_email: Optional[EmailStr] = Field(None, alias="reviewerEmail")

    model_config = ConfigDict(populate_by_name=True)

    def changes(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class Review(ReviewIn):
    """Reviews collection; one document per review, keyed to its product."""
    product_id: str = Field(..., alias="productId")
    date: str = Field(..., description="ISO-8601 creation time, stamped by the server")
    author_uid: Optional[str] = Field(None, alias="authorUid")
