"""
Maintenance commands for the storefront database.

    python manage.py seed               replace the catalog with the sample products
    python manage.py create-admin       create the admin account if it does not exist
    python manage.py fix-categories     rename the "Jewelry" category to "Jewellery"
    python manage.py check-categories   print the categories in use
    python manage.py check-orders       print the order count and a few samples

Each command exits 0 on success and 1 on any failure.
"""
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from auth import hash_password
from catalog import list_categories
from config import Settings, setup_logging
from database import Database, serialize_doc, utcnow
from errors import StoreError
from schemas import Product as ProductSchema, User as UserSchema, validate
from seed_data import DEFAULT_ADMIN, DEMO_PRODUCTS

log = logging.getLogger("manage")


def seed(db: Database, args) -> int:
    deleted = db["product"].delete_many({}).deleted_count
    log.info("Existing products deleted: %d", deleted)
    now = utcnow()
    docs = []
    for raw in DEMO_PRODUCTS:
        doc = validate(ProductSchema, raw).model_dump()
        if doc["new_arrival"]:
            doc["new_arrival_date"] = now
        doc["created_at"] = doc["updated_at"] = now
        docs.append(doc)
    db["product"].insert_many(docs)
    log.info("Database seeded! Total products: %d", len(docs))
    return len(docs)


def create_admin(db: Database, args) -> Optional[str]:
    email = (args.email or os.getenv("ADMIN_EMAIL") or DEFAULT_ADMIN["email"]).lower()
    if db["user"].find_one({"email": email}):
        log.info("Admin user already exists: %s", email)
        return None
    password = args.password or os.getenv("ADMIN_PASSWORD") or DEFAULT_ADMIN["password"]
    user = validate(UserSchema, {
        "name": DEFAULT_ADMIN["name"],
        "email": email,
        "password_hash": hash_password(password),
        "phone": DEFAULT_ADMIN["phone"],
        "address": DEFAULT_ADMIN["address"],
        "is_admin": True,
    })
    doc = user.model_dump()
    doc["created_at"] = doc["updated_at"] = utcnow()
    user_id = str(db["user"].insert_one(doc).inserted_id)
    log.info("Admin user created: %s (%s)", user_id, email)
    return user_id


def fix_categories(db: Database, args) -> int:
    res = db["product"].update_many({"category": "Jewelry"}, {"$set": {"category": "Jewellery"}})
    log.info("Migrated %d products from 'Jewelry' to 'Jewellery'", res.modified_count)
    log.info("Current categories: %s", list_categories(db))
    return res.modified_count


def check_categories(db: Database, args) -> List[str]:
    categories = list_categories(db)
    log.info("Categories in DB: %s", categories)
    return categories


def check_orders(db: Database, args) -> int:
    count = db["order"].count_documents({})
    log.info("Total orders in DB: %d", count)
    if count:
        sample = [serialize_doc(o) for o in db["order"].find({}).limit(5)]
        log.info("Sample orders: %s", json.dumps(sample, indent=2))
    else:
        log.info("No orders found in database.")
    return count


COMMANDS = {
    "seed": seed,
    "create-admin": create_admin,
    "fix-categories": fix_categories,
    "check-categories": check_categories,
    "check-orders": check_orders,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="manage.py", description="Storefront maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)
    for name in COMMANDS:
        cmd = sub.add_parser(name)
        if name == "create-admin":
            cmd.add_argument("--email")
            cmd.add_argument("--password")
    return parser


def main(argv: Optional[List[str]] = None, database: Optional[Database] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    db = database
    try:
        if db is None:
            db = Database.from_settings(settings).connect()
        COMMANDS[args.command](db, args)
    except StoreError as e:
        log.error("%s failed: %s", args.command, e.message)
        return 1
    except Exception:
        log.exception("%s failed", args.command)
        return 1
    finally:
        if database is None and db is not None:
            db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
