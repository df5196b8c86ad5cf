import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import admin, get_db
from database import Database, create_document, get_documents, serialize_doc, serialize_docs, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from schemas import CONTACT_STATUSES, Contact as ContactSchema, validate

log = logging.getLogger(__name__)


def create_message(db: Database, name: str, email: str, subject: str, message: str,
                   phone: Optional[str] = None) -> dict:
    contact = validate(ContactSchema, {
        "name": name,
        "email": email,
        "phone": phone or "",
        "subject": subject,
        "message": message,
        "status": "new",
    })
    message_id = create_document(db, "contact", contact)
    log.info("New contact message saved - ID: %s From: %s", message_id, contact.email)
    return get_message(db, message_id)


def list_messages(db: Database) -> List[dict]:
    return serialize_docs(get_documents(db, "contact", sort=[("created_at", -1), ("_id", -1)]))


def get_message(db: Database, message_id: str) -> dict:
    doc = db["contact"].find_one({"_id": to_object_id(message_id, "message id")})
    if not doc:
        raise NotFoundError("Contact message not found")
    return serialize_doc(doc)


def update_message_status(db: Database, message_id: str, status: Optional[str]) -> dict:
    if status not in CONTACT_STATUSES:
        raise ValidationError("Please provide a valid status (new, read, replied)", fields=["status"])
    oid = to_object_id(message_id, "message id")
    res = db["contact"].update_one({"_id": oid}, {"$set": {"status": status, "updated_at": utcnow()}})
    if res.matched_count == 0:
        raise NotFoundError("Contact message not found")
    return get_message(db, message_id)


class ContactBody(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


class ContactStatusBody(BaseModel):
    status: Optional[str] = None


router = APIRouter(prefix="/api/contact", tags=["contact"])


@router.post("", status_code=201)
def contact_create(body: ContactBody, db: Database = Depends(get_db)):
    missing = [f for f in ("name", "email", "subject", "message") if not getattr(body, f)]
    if missing:
        raise ValidationError(
            "Please provide all required fields (name, email, subject, message)", fields=missing
        )
    data = create_message(db, body.name, body.email, body.subject, body.message, body.phone)
    return {
        "success": True,
        "message": "Your message has been received. We will get back to you soon!",
        "data": data,
    }


@router.get("")
def contact_list(_: dict = Depends(admin), db: Database = Depends(get_db)):
    messages = list_messages(db)
    return {"success": True, "count": len(messages), "data": messages}


@router.get("/{message_id}")
def contact_detail(message_id: str, _: dict = Depends(admin), db: Database = Depends(get_db)):
    return {"success": True, "data": get_message(db, message_id)}


@router.put("/{message_id}")
def contact_update(message_id: str, body: ContactStatusBody, _: dict = Depends(admin),
                   db: Database = Depends(get_db)):
    data = update_message_status(db, message_id, body.status)
    return {"success": True, "message": "Contact status updated", "data": data}
