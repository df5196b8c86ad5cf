from fastapi import APIRouter, Depends

from auth import admin, get_db
from database import Database, get_documents, serialize_docs
from orders import with_buyer

RECENT_LIMIT = 5


def get_stats(db: Database) -> dict:
    orders = list(db["order"].find({}, {"total_amount": 1}))
    total_revenue = sum(o.get("total_amount", 0) for o in orders)

    newest = [("created_at", -1), ("_id", -1)]
    recent_orders = get_documents(db, "order", sort=newest, limit=RECENT_LIMIT)
    recent_messages = get_documents(db, "contact", sort=newest, limit=RECENT_LIMIT)

    return {
        "total_orders": db["order"].count_documents({}),
        "total_users": db["user"].count_documents({}),
        "total_products": db["product"].count_documents({}),
        "total_messages": db["contact"].count_documents({}),
        "total_revenue": total_revenue,
        "recent_orders": with_buyer(db, recent_orders, fields=("name",)),
        "recent_messages": serialize_docs(recent_messages),
    }


router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/stats")
def admin_stats(_: dict = Depends(admin), db: Database = Depends(get_db)):
    return {"success": True, "data": get_stats(db)}
