import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError

from auth import get_db, protect
from catalog import find_product, first_image
from database import Database, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from schemas import Cart as CartSchema, CartItem, validate

log = logging.getLogger(__name__)


def get_cart_doc(db: Database, user_id: str):
    return db["cart"].find_one({"user_id": user_id})


def _line_filter(user_id: str, product_id: str) -> dict:
    return {"user_id": user_id, "items.product_id": product_id}


def _increment_line(db: Database, user_id: str, line: dict) -> bool:
    res = db["cart"].update_one(
        _line_filter(user_id, line["product_id"]),
        {"$inc": {"items.$.quantity": line["quantity"]}, "$set": {"updated_at": utcnow()}},
    )
    return res.matched_count > 0


def _push_line(db: Database, user_id: str, line: dict):
    # Creates the cart on first add. If the line already exists the filter
    # misses and the upsert collides with the unique user_id index.
    now = utcnow()
    db["cart"].update_one(
        {"user_id": user_id, "items.product_id": {"$ne": line["product_id"]}},
        {"$push": {"items": line}, "$set": {"updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )


def _add_line(db: Database, user_id: str, line: dict):
    if not _increment_line(db, user_id, line):
        _push_line(db, user_id, line)


def view_cart(db: Database, user_id: str) -> dict:
    """The user's cart with live product details; lines whose product is gone are flagged."""
    doc = get_cart_doc(db, user_id)
    cart = validate(CartSchema, {"user_id": user_id, "items": (doc or {}).get("items", [])})
    items = []
    subtotal = 0.0
    for line in cart.items:
        product = db["product"].find_one({"_id": to_object_id(line.product_id, "product id")})
        entry = {"product_id": line.product_id, "quantity": line.quantity, "available": product is not None}
        if product:
            entry.update({
                "name": product["name"],
                "price": product["price"],
                "image": first_image(product),
                "stock": product["stock"],
            })
            subtotal += product["price"] * line.quantity
        items.append(entry)
    return {"user_id": user_id, "items": items, "subtotal": subtotal}


def add_item(db: Database, user_id: str, product_id: str, quantity: int = 1) -> dict:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", fields=["quantity"])
    find_product(db, product_id)
    line = validate(CartItem, {"product_id": product_id, "quantity": quantity}).model_dump()
    try:
        _add_line(db, user_id, line)
    except DuplicateKeyError:
        # another request created the cart or this line first
        log.debug("Cart upsert for user %s collided, retrying", user_id)
        _add_line(db, user_id, line)
    return view_cart(db, user_id)


def set_quantity(db: Database, user_id: str, product_id: str, quantity: int) -> dict:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", fields=["quantity"])
    res = db["cart"].update_one(
        _line_filter(user_id, product_id),
        {"$set": {"items.$.quantity": quantity, "updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("Item not in cart")
    return view_cart(db, user_id)


def remove_item(db: Database, user_id: str, product_id: str) -> dict:
    res = db["cart"].update_one(
        _line_filter(user_id, product_id),
        {"$pull": {"items": {"product_id": product_id}}, "$set": {"updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("Item not in cart")
    return view_cart(db, user_id)


def clear_cart(db: Database, user_id: str):
    db["cart"].update_one({"user_id": user_id}, {"$set": {"items": [], "updated_at": utcnow()}})


# ----------------------- Models -----------------------
class CartAddBody(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class CartQuantityBody(BaseModel):
    quantity: int = Field(..., ge=1)


# ----------------------- Routes -----------------------
router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("")
def cart(user: dict = Depends(protect), db: Database = Depends(get_db)):
    return {"success": True, "data": view_cart(db, user["id"])}


@router.post("")
def cart_add(body: CartAddBody, user: dict = Depends(protect), db: Database = Depends(get_db)):
    return {"success": True, "data": add_item(db, user["id"], body.product_id, body.quantity)}


@router.put("/{product_id}")
def cart_update(product_id: str, body: CartQuantityBody, user: dict = Depends(protect),
                db: Database = Depends(get_db)):
    return {"success": True, "data": set_quantity(db, user["id"], product_id, body.quantity)}


@router.delete("/{product_id}")
def cart_remove(product_id: str, user: dict = Depends(protect), db: Database = Depends(get_db)):
    return {"success": True, "data": remove_item(db, user["id"], product_id)}


@router.delete("")
def cart_clear(user: dict = Depends(protect), db: Database = Depends(get_db)):
    clear_cart(db, user["id"])
    return {"success": True, "message": "Cart cleared"}
