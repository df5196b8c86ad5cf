import hashlib
import logging
from datetime import timedelta
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr
from pymongo.errors import DuplicateKeyError

from config import Settings
from database import Database, create_document, get_documents, serialize_doc, to_object_id, utcnow
from errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from schemas import Address, User as UserSchema, validate

log = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

MIN_PASSWORD_LENGTH = 6


# ----------------------- Dependencies -----------------------
def get_db(request: Request) -> Database:
    return request.app.state.db


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# ----------------------- Utils -----------------------
def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def create_token(user_id: str, settings: Settings) -> str:
    exp = utcnow() + timedelta(days=settings.jwt_expires_days)
    return jwt.encode({"id": user_id, "exp": exp}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Not authorized, token failed")


def public_user(doc: dict) -> dict:
    user = serialize_doc(doc)
    user.pop("password_hash", None)
    return user


def protect(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> dict:
    if credentials is None:
        raise AuthenticationError("Not authorized, no token")
    payload = decode_token(credentials.credentials, settings)
    user_id = payload.get("id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    try:
        oid = to_object_id(user_id)
    except ValidationError:
        raise AuthenticationError("Invalid token payload")
    user = db["user"].find_one({"_id": oid})
    if not user:
        raise AuthenticationError("User not found")
    return public_user(user)


def admin(user: dict = Depends(protect)) -> dict:
    if not user.get("is_admin"):
        raise AuthorizationError("Not authorized as an admin")
    return user


# ----------------------- Operations -----------------------
def register_user(db: Database, name: str, email: str, password: str, confirm_password: str,
                  phone: Optional[str] = None) -> dict:
    if password != confirm_password:
        raise ValidationError("Passwords do not match", fields=["confirm_password"])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", fields=["password"]
        )
    email = email.lower()
    if db["user"].find_one({"email": email}):
        raise ConflictError("User already exists")
    user = validate(UserSchema, {
        "name": name,
        "email": email,
        "password_hash": hash_password(password),
        "phone": phone or None,
        "is_admin": False,
    })
    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        raise ConflictError("User already exists")
    log.info("User registered: %s (%s)", user_id, email)
    return public_user(db["user"].find_one({"_id": to_object_id(user_id)}))


def authenticate(db: Database, email: str, password: str) -> dict:
    user = db["user"].find_one({"email": email.lower()})
    if not user or user.get("password_hash") != hash_password(password):
        raise AuthenticationError("Invalid credentials")
    return public_user(user)


def update_profile(db: Database, user_id: str, changes: dict) -> dict:
    oid = to_object_id(user_id)
    current = db["user"].find_one({"_id": oid})
    if not current:
        raise NotFoundError("User not found")
    update = {}
    for key in ("name", "email", "phone", "address"):
        if changes.get(key):
            update[key] = changes[key]
    if "email" in update:
        update["email"] = update["email"].lower()
        clash = db["user"].find_one({"email": update["email"], "_id": {"$ne": oid}})
        if clash:
            raise ConflictError("Email already in use")
    if changes.get("password"):
        if len(changes["password"]) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", fields=["password"]
            )
        update["password_hash"] = hash_password(changes["password"])
    merged = {k: v for k, v in current.items() if k != "_id"}
    merged.update(update)
    validate(UserSchema, merged)
    if update:
        update["updated_at"] = utcnow()
        db["user"].update_one({"_id": oid}, {"$set": update})
    return public_user(db["user"].find_one({"_id": oid}))


def list_users(db: Database) -> list:
    return [public_user(u) for u in get_documents(db, "user", sort=[("created_at", -1)])]


# ----------------------- Models -----------------------
class RegisterBody(BaseModel):
    name: str
    email: EmailStr
    password: str
    confirm_password: str
    phone: Optional[str] = None


class LoginBody(BaseModel):
    email: EmailStr
    password: str


class ProfileBody(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    password: Optional[str] = None


# ----------------------- Routes -----------------------
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _with_token(user: dict, settings: Settings) -> dict:
    return {**user, "token": create_token(user["id"], settings)}


@router.post("/register", status_code=201)
def register(body: RegisterBody, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = register_user(db, body.name, body.email, body.password, body.confirm_password, body.phone)
    return {"success": True, "data": _with_token(user, settings)}


@router.post("/login")
def login(body: LoginBody, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = authenticate(db, body.email, body.password)
    return {"success": True, "data": _with_token(user, settings)}


@router.get("/me")
def me(user: dict = Depends(protect)):
    return {"success": True, "data": user}


@router.put("/profile")
def profile(body: ProfileBody, user: dict = Depends(protect), db: Database = Depends(get_db),
            settings: Settings = Depends(get_settings)):
    changes = body.model_dump(exclude_none=True)
    updated = update_profile(db, user["id"], changes)
    return {"success": True, "data": _with_token(updated, settings)}


@router.get("/users")
def users(_: dict = Depends(admin), db: Database = Depends(get_db)):
    data = list_users(db)
    return {"success": True, "count": len(data), "data": data}
