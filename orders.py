"""
Order placement and order reads.

place_order turns the caller's cart into an Order. Each line re-reads its
product, snapshots name and price, and takes its stock with a conditional
decrement (only if stock >= quantity), so two placements racing for the
last unit cannot both win. A placement is all-or-nothing: if any line
fails, or the order cannot be written, every decrement already taken is
given back before the error propagates, the cart is left as it was and no
order exists.
"""
import logging
from typing import List, Tuple

from bson.errors import InvalidId
from bson.objectid import ObjectId
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import admin, get_db, protect
from cart import clear_cart, get_cart_doc
from database import Database, create_document, serialize_doc, to_object_id, utcnow
from errors import (
    AuthorizationError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from schemas import (
    ORDER_STATUSES,
    PAYMENT_METHODS,
    Order as OrderSchema,
    OrderStatus,
    PaymentMethod,
    ShippingAddress,
    validate,
)

log = logging.getLogger(__name__)

TERMINAL_STATUSES = ("Delivered", "Cancelled")


def _take_stock(db: Database, line: dict) -> dict:
    """Validate one cart line against its product and decrement the stock."""
    product_id = line["product_id"]
    quantity = line["quantity"]
    oid = to_object_id(product_id, "product id")
    product = db["product"].find_one({"_id": oid})
    if not product:
        raise ProductNotFoundError(product_id)
    if product["stock"] < quantity:
        raise InsufficientStockError(product["name"], product["stock"])
    taken = db.update_if("product", {"_id": oid, "stock": {"$gte": quantity}}, {"$inc": {"stock": -quantity}})
    if not taken:
        # stock moved between the read and the decrement
        fresh = db["product"].find_one({"_id": oid})
        if not fresh:
            raise ProductNotFoundError(product_id)
        raise InsufficientStockError(fresh["name"], fresh["stock"])
    return product


def _give_back(db: Database, taken: List[Tuple[ObjectId, int]]):
    for oid, quantity in reversed(taken):
        db["product"].update_one({"_id": oid}, {"$inc": {"stock": quantity}})
    if taken:
        log.warning("Order placement rolled back stock for %d products", len(taken))


def place_order(db: Database, user_id: str, shipping_address: dict, payment_method: str = "COD") -> dict:
    address = validate(ShippingAddress, shipping_address)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {payment_method}", fields=["payment_method"])
    cart = get_cart_doc(db, user_id)
    if not cart or not cart.get("items"):
        raise EmptyCartError()

    items = []
    total_amount = 0
    taken = []
    try:
        for line in cart["items"]:
            product = _take_stock(db, line)
            taken.append((product["_id"], line["quantity"]))
            items.append({
                "product_id": str(product["_id"]),
                "name": product["name"],
                "quantity": line["quantity"],
                "price": product["price"],
            })
            total_amount += product["price"] * line["quantity"]

        order = validate(OrderSchema, {
            "user_id": user_id,
            "items": items,
            "shipping_address": address.model_dump(),
            "payment_method": payment_method,
            "total_amount": total_amount,
            "status": "Pending",
        })
        order_id = create_document(db, "order", order)
    except Exception as e:
        _give_back(db, taken)
        log.info("Order placement failed for user %s: %s", user_id, e)
        raise

    clear_cart(db, user_id)
    log.info("Order %s placed by user %s: %d items, total %.2f", order_id, user_id, len(items), total_amount)
    return serialize_doc(db["order"].find_one({"_id": ObjectId(order_id)}))


def get_order(db: Database, order_id: str, caller: dict) -> dict:
    doc = db["order"].find_one({"_id": to_object_id(order_id, "order id")})
    if not doc:
        raise NotFoundError("Order not found")
    if doc["user_id"] != caller["id"] and not caller.get("is_admin"):
        raise AuthorizationError("Not authorized to view this order")
    return serialize_doc(doc)


def list_orders_for_user(db: Database, user_id: str) -> List[dict]:
    cursor = db["order"].find({"user_id": user_id}).sort([("created_at", -1), ("_id", -1)])
    return [serialize_doc(o) for o in cursor]


def _buyers(db: Database, orders: List[dict]) -> dict:
    ids = []
    for o in orders:
        try:
            ids.append(ObjectId(o["user_id"]))
        except (InvalidId, TypeError):
            log.warning("Order %s has a malformed user id", o.get("_id"))
    users = db["user"].find({"_id": {"$in": ids}}, {"name": 1, "email": 1, "phone": 1})
    return {str(u["_id"]): u for u in users}


def with_buyer(db: Database, orders: List[dict], fields=("name", "email", "phone")) -> List[dict]:
    """Serialize orders with the buyer's details resolved into ``user``."""
    buyers = _buyers(db, orders)
    out = []
    for o in orders:
        item = serialize_doc(o)
        buyer = buyers.get(o["user_id"])
        item["user"] = {"id": o["user_id"], **{f: buyer.get(f) for f in fields}} if buyer else None
        out.append(item)
    return out


def list_all_orders(db: Database) -> List[dict]:
    orders = list(db["order"].find({}).sort([("created_at", -1), ("_id", -1)]))
    return with_buyer(db, orders)


def can_transition(current: str, new: str) -> bool:
    if current in TERMINAL_STATUSES or new == current:
        return False
    if new == "Cancelled":
        return True
    return ORDER_STATUSES.index(new) > ORDER_STATUSES.index(current)


def update_order_status(db: Database, order_id: str, status: str) -> dict:
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status: {status}", fields=["status"])
    oid = to_object_id(order_id, "order id")
    doc = db["order"].find_one({"_id": oid})
    if not doc:
        raise NotFoundError("Order not found")
    if not can_transition(doc["status"], status):
        raise ValidationError(f"Cannot move order from {doc['status']} to {status}", fields=["status"])
    db["order"].update_one({"_id": oid}, {"$set": {"status": status, "updated_at": utcnow()}})
    log.info("Order %s status %s -> %s", order_id, doc["status"], status)
    return serialize_doc(db["order"].find_one({"_id": oid}))


# ----------------------- Models -----------------------
class OrderCreateBody(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "COD"


class OrderStatusBody(BaseModel):
    status: OrderStatus


# ----------------------- Routes -----------------------
router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", status_code=201)
def order_create(body: OrderCreateBody, user: dict = Depends(protect), db: Database = Depends(get_db)):
    order = place_order(db, user["id"], body.shipping_address.model_dump(), body.payment_method)
    return {"success": True, "data": order}


@router.get("")
def my_orders(user: dict = Depends(protect), db: Database = Depends(get_db)):
    orders = list_orders_for_user(db, user["id"])
    return {"success": True, "count": len(orders), "data": orders}


@router.get("/all")
def all_orders(_: dict = Depends(admin), db: Database = Depends(get_db)):
    orders = list_all_orders(db)
    return {"success": True, "count": len(orders), "data": orders}


@router.get("/{order_id}")
def order_detail(order_id: str, user: dict = Depends(protect), db: Database = Depends(get_db)):
    return {"success": True, "data": get_order(db, order_id, user)}


@router.put("/{order_id}/status")
def order_status(order_id: str, body: OrderStatusBody, _: dict = Depends(admin), db: Database = Depends(get_db)):
    return {"success": True, "data": update_order_status(db, order_id, body.status)}
