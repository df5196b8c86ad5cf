import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING

from auth import admin, get_db
from database import Database, as_utc, create_document, serialize_doc, to_object_id, utcnow
from errors import ProductNotFoundError, ValidationError
from schemas import Category, Product as ProductSchema, Ratings, validate

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# skip is sent to MongoDB as a signed 64-bit integer
MAX_SKIP = 2 ** 63 - 1
NEW_ARRIVALS_LIMIT = 20
NEW_ARRIVAL_WINDOW = timedelta(days=7)

# _id ascending is insertion order; it keeps every ordering total.
SORT_OPTIONS = {
    "newest": [("created_at", DESCENDING), ("_id", ASCENDING)],
    "oldest": [("created_at", ASCENDING), ("_id", ASCENDING)],
    "price-asc": [("price", ASCENDING), ("_id", ASCENDING)],
    "price-desc": [("price", DESCENDING), ("_id", ASCENDING)],
    "rating": [("ratings.average", DESCENDING), ("_id", ASCENDING)],
}
DEFAULT_SORT = "newest"


def _parse_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _parse_positive_int(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value >= 1 else None


@dataclass
class ProductQuery:
    """A parsed product listing request.

    Built with from_params, which never rejects input: malformed numbers,
    unknown sort keys and flag values other than "true" are dropped and the
    defaults apply.
    """
    category: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    featured: bool = False
    new_arrival: bool = False
    sort: str = DEFAULT_SORT
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(cls, category: Optional[str] = None, search: Optional[str] = None,
                    min_price: Optional[str] = None, max_price: Optional[str] = None,
                    featured: Optional[str] = None, new_arrival: Optional[str] = None,
                    sort: Optional[str] = None, page: Optional[str] = None,
                    limit: Optional[str] = None) -> "ProductQuery":
        limit = min(_parse_positive_int(limit) or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        page = _parse_positive_int(page)
        if page is None or (page - 1) * limit > MAX_SKIP:
            page = 1
        return cls(
            category=category or None,
            search=search if search and search.strip() else None,
            min_price=_parse_float(min_price),
            max_price=_parse_float(max_price),
            featured=featured == "true",
            new_arrival=new_arrival == "true",
            sort=sort if sort in SORT_OPTIONS else DEFAULT_SORT,
            page=page,
            limit=limit,
        )

    def to_filter(self) -> dict:
        filt = {}
        if self.category:
            filt["category"] = self.category
        if self.featured:
            filt["featured"] = True
        if self.new_arrival:
            filt["new_arrival"] = True
        if self.search:
            pattern = re.escape(self.search)
            filt["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        if self.min_price is not None or self.max_price is not None:
            filt["price"] = {}
            if self.min_price is not None:
                filt["price"]["$gte"] = self.min_price
            if self.max_price is not None:
                filt["price"]["$lte"] = self.max_price
        return filt

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def total_pages(total_count: int, limit: int) -> int:
    return math.ceil(total_count / limit) if limit else 0


# ----------------------- Derived fields -----------------------
def first_image(doc: dict) -> Optional[str]:
    images = doc.get("images") or []
    return images[0] if images else None


def is_new(doc: dict, now: datetime) -> bool:
    if not doc.get("new_arrival"):
        return False
    since = doc.get("new_arrival_date") or doc.get("created_at")
    if since is None:
        return False
    return as_utc(now) - as_utc(since) <= NEW_ARRIVAL_WINDOW


def serialize_product(doc: dict, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    out = serialize_doc(doc)
    out["image"] = first_image(doc)
    out["is_new"] = is_new(doc, now)
    return out


# ----------------------- Queries -----------------------
def list_products(db: Database, query: ProductQuery) -> Tuple[List[dict], int]:
    filt = query.to_filter()
    total_count = db["product"].count_documents(filt)
    cursor = (
        db["product"].find(filt)
        .sort(SORT_OPTIONS[query.sort])
        .skip(query.skip)
        .limit(query.limit)
    )
    now = utcnow()
    return [serialize_product(p, now) for p in cursor], total_count


def list_new_arrivals(db: Database, limit: int = NEW_ARRIVALS_LIMIT) -> List[dict]:
    now = utcnow()
    cursor = db["product"].find({}).sort(SORT_OPTIONS["newest"]).limit(limit)
    return [serialize_product(p, now) for p in cursor]


def list_categories(db: Database) -> List[str]:
    return sorted(db["product"].distinct("category"))


def find_product(db: Database, product_id: str) -> dict:
    doc = db["product"].find_one({"_id": to_object_id(product_id, "product id")})
    if not doc:
        raise ProductNotFoundError(product_id)
    return doc


def get_product(db: Database, product_id: str) -> dict:
    return serialize_product(find_product(db, product_id))


# ----------------------- Mutations -----------------------
def _stamp_new_arrival(data: dict) -> dict:
    if data.get("new_arrival") and not data.get("new_arrival_date"):
        data["new_arrival_date"] = utcnow()
    return data


def create_product(db: Database, data: dict) -> dict:
    product = validate(ProductSchema, data)
    doc = _stamp_new_arrival(product.model_dump())
    product_id = create_document(db, "product", doc)
    log.info("Product created: %s (%s)", product_id, product.name)
    return get_product(db, product_id)


def update_product(db: Database, product_id: str, changes: dict) -> dict:
    current = find_product(db, product_id)
    merged = {k: v for k, v in current.items() if k not in ("_id", "created_at", "updated_at")}
    merged.update(changes)
    doc = _stamp_new_arrival(validate(ProductSchema, merged).model_dump())
    # only the edited fields are written; stock may have moved since the read
    update = {k: doc[k] for k in changes}
    if doc["new_arrival_date"] != merged.get("new_arrival_date"):
        update["new_arrival_date"] = doc["new_arrival_date"]
    update["updated_at"] = utcnow()
    db["product"].update_one({"_id": current["_id"]}, {"$set": update})
    log.info("Product updated: %s", product_id)
    return get_product(db, product_id)


def delete_product(db: Database, product_id: str):
    res = db["product"].delete_one({"_id": to_object_id(product_id, "product id")})
    if res.deleted_count == 0:
        raise ProductNotFoundError(product_id)
    log.info("Product deleted: %s", product_id)


def delete_products(db: Database, product_ids: List[str]) -> int:
    if not product_ids:
        raise ValidationError("Provide at least one product id", fields=["ids"])
    oids = [to_object_id(pid, "product id") for pid in product_ids]
    res = db["product"].delete_many({"_id": {"$in": oids}})
    log.info("Bulk delete removed %d of %d products", res.deleted_count, len(oids))
    return res.deleted_count


# ----------------------- Models -----------------------
class ProductUpdateBody(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    original_price: Optional[float] = None
    category: Optional[Category] = None
    subcategory: Optional[str] = None
    images: Optional[List[str]] = None
    features: Optional[List[str]] = None
    stock: Optional[int] = None
    ratings: Optional[Ratings] = None
    featured: Optional[bool] = None
    new_arrival: Optional[bool] = None
    new_arrival_date: Optional[datetime] = None


class BulkDeleteBody(BaseModel):
    ids: List[str]


# ----------------------- Routes -----------------------
router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
def products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    featured: Optional[str] = None,
    new_arrival: Optional[str] = Query(None, alias="newArrival"),
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
):
    query = ProductQuery.from_params(
        category=category, search=search, min_price=min_price, max_price=max_price,
        featured=featured, new_arrival=new_arrival, sort=sort, page=page, limit=limit,
    )
    items, total_count = list_products(db, query)
    log.debug("Product query %s matched %d", query, total_count)
    return {
        "success": True,
        "count": len(items),
        "totalCount": total_count,
        "totalPages": total_pages(total_count, query.limit),
        "currentPage": query.page,
        "data": items,
    }


@router.get("/new-arrivals")
def new_arrivals(db: Database = Depends(get_db)):
    items = list_new_arrivals(db)
    return {"success": True, "count": len(items), "data": items}


@router.get("/categories/all")
def categories(db: Database = Depends(get_db)):
    return {"success": True, "data": list_categories(db)}


@router.get("/{product_id}")
def product_detail(product_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": get_product(db, product_id)}


@router.post("", status_code=201)
def product_create(body: ProductSchema, _: dict = Depends(admin), db: Database = Depends(get_db)):
    return {"success": True, "data": create_product(db, body.model_dump())}


@router.put("/{product_id}")
def product_update(product_id: str, body: ProductUpdateBody, _: dict = Depends(admin),
                   db: Database = Depends(get_db)):
    changes = body.model_dump(exclude_unset=True)
    return {"success": True, "data": update_product(db, product_id, changes)}


@router.delete("/{product_id}")
def product_delete(product_id: str, _: dict = Depends(admin), db: Database = Depends(get_db)):
    delete_product(db, product_id)
    return {"success": True, "message": "Product deleted"}


@router.delete("")
def products_bulk_delete(body: BulkDeleteBody, _: dict = Depends(admin), db: Database = Depends(get_db)):
    deleted = delete_products(db, body.ids)
    return {"success": True, "message": f"{deleted} products deleted", "count": deleted}
