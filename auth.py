"""
Email/password accounts and bearer tokens.

Tokens are HS256 JWTs carrying the user's id as `uid`. Write routes take the
credential explicitly (request body or Authorization header) and verify it
per request.
"""
import hashlib
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database

from database import create_document, serialize_doc
from schemas import User

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

bearer = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def create_token(uid: str, email: str) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=JWT_EXPIRES_DAYS)
    return jwt.encode({"uid": uid, "email": email, "exp": exp}, JWT_SECRET, algorithm=JWT_ALGO)


def verify_token(token: Optional[str]) -> str:
    """Return the subject id for `token`.

    Raises 401 when no token is given and 403 when it is expired or invalid.
    """
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=403, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=403, detail="Invalid token")
    uid = payload.get("uid")
    if not uid:
        raise HTTPException(status_code=403, detail="Invalid token payload")
    return uid


def bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[str]:
    return credentials.credentials if credentials else None


def _public_user(user: dict) -> dict:
    return {"id": user["id"], "name": user["name"], "email": user["email"]}


def sign_up(database: Database, name: str, email: str, password: str) -> dict:
    if database["user"].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(name=name, email=email, password_hash=hash_password(password))
    user_id = create_document("user", user.model_dump(exclude_none=True), database)
    logger.info("Created account %s", user_id)
    return {"token": create_token(user_id, email), "user": {"id": user_id, "name": name, "email": email}}


def sign_in(database: Database, email: str, password: str) -> dict:
    user = database["user"].find_one({"email": email})
    if not user or user.get("password_hash") != hash_password(password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    suser = serialize_doc(user)
    return {"token": create_token(suser["id"], suser["email"]), "user": _public_user(suser)}
