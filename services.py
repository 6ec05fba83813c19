"""
Order and payment-request workflow on top of MongoDB.

Handlers in ``main`` stay thin; everything that touches more than one
document lives here.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, ensure_object_id, now, serialize_doc
from pricing import calculate_prices
from schemas import (
    MANUAL_VERIFICATION_METHODS,
    Order,
    OrderCreate,
    OrderStatus,
    PaymentRequest,
    PaymentRequestStatus,
    PaymentSettings,
    Review,
    ReviewCreate,
)

logger = logging.getLogger(__name__)

# Allowed difference between client and server totals
PRICE_TOLERANCE = 0.01

ACTIVE_REQUEST_STATUSES = [PaymentRequestStatus.pending.value, PaymentRequestStatus.completed.value]


def _get_or_404(db: Database, collection: str, doc_id: str, label: str) -> dict:
    doc = db[collection].find_one({"_id": ensure_object_id(doc_id)})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found with id of {doc_id}")
    return doc


def check_prices(payload: OrderCreate):
    expected = calculate_prices(payload.order_items)
    for field, value in expected.items():
        if abs(getattr(payload, field) - value) > PRICE_TOLERANCE:
            raise HTTPException(status_code=400, detail=f"Order {field} does not match order items")


# ----- Orders -----

def create_order(db: Database, user: dict, payload: OrderCreate) -> dict:
    check_prices(payload)
    order = Order(user_id=str(user["_id"]), **payload.model_dump())
    if not order.is_paid:
        order.paid_at = None
    elif order.paid_at is None:
        order.paid_at = now()
    order_id = create_document(db, "order", order)
    logger.info("Order %s created (%s, total=%s, paid=%s)", order_id, order.payment_method,
                order.total_price, order.is_paid)

    if order.payment_method in MANUAL_VERIFICATION_METHODS and not order.is_paid:
        _ensure_payment_request(db, order_id, str(user["_id"]), order.total_price, order.payment_method)
    return get_order(db, order_id)


def _ensure_payment_request(db: Database, order_id: str, user_id: str, amount: float, method: str):
    existing = db["payment_request"].find_one({"order_id": order_id, "status": {"$in": ACTIVE_REQUEST_STATUSES}})
    if existing:
        logger.info("Payment request already exists for order %s", order_id)
        return
    request = PaymentRequest(
        user_id=user_id,
        order_id=order_id,
        amount=amount,
        payment_method=method,
        notes=f"Auto-generated payment request for {method} payment",
    )
    request_id = create_document(db, "payment_request", request)
    logger.info("Payment request %s created for order %s", request_id, order_id)


def get_order(db: Database, order_id: str) -> dict:
    return serialize_doc(_get_or_404(db, "order", order_id, "Order"))


def update_order_status(db: Database, order_id: str, status: str) -> dict:
    update = {"status": status, "updated_at": now()}
    if status == OrderStatus.delivered.value:
        update["delivered_at"] = now()
    doc = db["order"].find_one_and_update(
        {"_id": ensure_object_id(order_id)}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if not doc:
        raise HTTPException(status_code=404, detail=f"Order not found with id of {order_id}")
    logger.info("Order %s status -> %s", order_id, status)
    return serialize_doc(doc)


def mark_order_paid(db: Database, order_id: str, payment_id: str, status: str = "completed",
                    email: Optional[str] = None, update_time: Optional[str] = None) -> dict:
    stamp = now()
    result = {"id": payment_id, "status": status, "update_time": update_time or stamp.isoformat()}
    if email:
        result["email_address"] = email
    doc = db["order"].find_one_and_update(
        {"_id": ensure_object_id(order_id)},
        {"$set": {"is_paid": True, "paid_at": stamp, "payment_result": result, "updated_at": stamp}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise HTTPException(status_code=404, detail=f"Order not found with id of {order_id}")
    return serialize_doc(doc)


# ----- Payment requests -----

def create_payment_request(db: Database, user: dict, order_id: str, amount: float, method: str,
                           notes: Optional[str] = None, transaction_id: Optional[str] = None) -> dict:
    order = _get_or_404(db, "order", order_id, "Order")
    if order["user_id"] != str(user["_id"]) and not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not authorized to create payment request for this order")
    # Stored ids are the lowercase hex form
    order_id = str(order["_id"])
    if db["payment_request"].find_one({"order_id": order_id, "status": {"$in": ACTIVE_REQUEST_STATUSES}}):
        raise HTTPException(status_code=400, detail="A payment request already exists for this order")
    request = PaymentRequest(
        user_id=order["user_id"],
        order_id=order_id,
        amount=amount,
        payment_method=method,
        transaction_id=transaction_id,
        notes=notes,
    )
    return get_payment_request(db, create_document(db, "payment_request", request))


def get_payment_request(db: Database, request_id: str) -> dict:
    return serialize_doc(_get_or_404(db, "payment_request", request_id, "Payment request"))


def with_order(db: Database, request: dict) -> dict:
    order = db["order"].find_one({"_id": ensure_object_id(request["order_id"])})
    return {**request, "order": serialize_doc(order)}


def update_payment_request_status(db: Database, request_id: str, status: str, notes: Optional[str] = None) -> dict:
    """Move a pending request to ``status``; approving also marks the order paid.

    The two writes are a small saga: when marking the order paid fails, the
    request is put back to pending and the error is returned to the caller.
    """
    current = _get_or_404(db, "payment_request", request_id, "Payment request")
    if current["status"] != PaymentRequestStatus.pending.value:
        logger.warning("Refused %s -> %s on payment request %s", current["status"], status, request_id)
        raise HTTPException(status_code=400, detail=f"Payment request is already {current['status']}")

    update = {"status": status, "updated_at": now()}
    if notes is not None:
        update["notes"] = notes
    # Conditional on still being pending so two admins cannot both approve
    updated = db["payment_request"].find_one_and_update(
        {"_id": current["_id"], "status": PaymentRequestStatus.pending.value},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=409, detail="Payment request was updated by someone else")
    logger.info("Payment request %s -> %s", request_id, status)

    if status == PaymentRequestStatus.completed.value:
        try:
            mark_order_paid(db, current["order_id"], payment_id=request_id)
        except (HTTPException, PyMongoError):
            logger.exception("Marking order %s paid failed, reverting payment request %s",
                             current["order_id"], request_id)
            db["payment_request"].update_one(
                {"_id": current["_id"]},
                {"$set": {"status": current["status"], "notes": current.get("notes"),
                          "updated_at": datetime.now(timezone.utc)}},
            )
            raise HTTPException(status_code=409, detail="Could not mark the linked order as paid; approval reverted")
    return serialize_doc(updated)


def attach_payment_proof(db: Database, user: dict, request_id: str, proof_url: str) -> dict:
    request = _get_or_404(db, "payment_request", request_id, "Payment request")
    if request["user_id"] != str(user["_id"]) and not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not authorized to update this payment request")
    doc = db["payment_request"].find_one_and_update(
        {"_id": request["_id"]},
        {"$set": {"payment_proof": proof_url, "updated_at": now()}},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_doc(doc)


# ----- Categories -----

def slugify(name: str) -> str:
    slug = re.sub(r"[*+~.()'\"!:@]", "", name.strip().lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return re.sub(r"-{2,}", "-", slug).strip("-")


def unique_slug(db: Database, name: str, exclude_id=None) -> str:
    base = slugify(name) or f"category-{int(now().timestamp())}"
    slug, counter = base, 1
    query = {"slug": slug}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    while db["category"].find_one(query):
        slug = f"{base}-{counter}"
        counter += 1
        query["slug"] = slug
    return slug


def category_name_taken(db: Database, name: str, exclude_id=None) -> bool:
    query = {"name": {"$regex": f"^{re.escape(name.strip())}$", "$options": "i"}}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return db["category"].find_one(query) is not None


def delete_category(db: Database, category_id: str) -> dict:
    category = _get_or_404(db, "category", category_id, "Category")
    products = db["product"].count_documents({"category": str(category["_id"])})
    if products > 0:
        logger.warning("Refused to delete category %s: %d products", category_id, products)
        raise HTTPException(
            status_code=400,
            detail="Cannot delete category that has products. Please remove or reassign the products first.",
        )
    db["category"].delete_one({"_id": category["_id"]})
    logger.info("Category %s deleted", category_id)
    return serialize_doc(category)


# ----- Reviews -----

def add_review(db: Database, user: dict, product_id: str, body: ReviewCreate) -> dict:
    product = _get_or_404(db, "product", product_id, "Product")
    product_id = str(product["_id"])
    user_id = str(user["_id"])
    if db["review"].find_one({"product_id": product_id, "user_id": user_id}):
        raise HTTPException(status_code=400, detail="You already reviewed this product")
    review = Review(product_id=product_id, user_id=user_id, user_name=user["name"],
                    rating=body.rating, comment=body.comment)
    review_id = create_document(db, "review", review)
    refresh_product_rating(db, product["_id"])
    logger.info("Review %s added to product %s (%d stars)", review_id, product_id, body.rating)
    return serialize_doc(db["review"].find_one({"_id": ensure_object_id(review_id)}))


def refresh_product_rating(db: Database, product_oid) -> None:
    pipeline = [
        {"$match": {"product_id": str(product_oid)}},
        {"$group": {"_id": "$product_id", "avg": {"$avg": "$rating"}, "count": {"$sum": 1}}},
    ]
    agg = list(db["review"].aggregate(pipeline))
    rating, count = (round(agg[0]["avg"], 2), agg[0]["count"]) if agg else (0, 0)
    db["product"].update_one({"_id": product_oid}, {"$set": {"rating": rating, "num_reviews": count}})


def list_reviews(db: Database, product_id: str) -> list:
    product = _get_or_404(db, "product", product_id, "Product")
    return [serialize_doc(r) for r in db["review"].find({"product_id": str(product["_id"])}).sort([("created_at", -1)])]


# ----- Payment settings -----

def _deactivate_payment_settings(db: Database, keep_id=None):
    query = {"is_active": True}
    if keep_id is not None:
        query["_id"] = {"$ne": keep_id}
    db["payment_settings"].update_many(query, {"$set": {"is_active": False, "updated_at": now()}})


def active_payment_settings(db: Database) -> dict:
    settings = db["payment_settings"].find_one({"is_active": True})
    if not settings:
        raise HTTPException(status_code=404, detail="No payment settings found")
    return serialize_doc(settings)


def create_payment_settings(db: Database, body: PaymentSettings) -> dict:
    settings_id = create_document(db, "payment_settings", body)
    # At most one record is active
    if body.is_active:
        _deactivate_payment_settings(db, keep_id=ensure_object_id(settings_id))
    logger.info("Payment settings %s created (active=%s)", settings_id, body.is_active)
    return serialize_doc(db["payment_settings"].find_one({"_id": ensure_object_id(settings_id)}))


def update_payment_settings(db: Database, settings_id: str, fields: dict) -> dict:
    current = _get_or_404(db, "payment_settings", settings_id, "Payment settings")
    fields["updated_at"] = now()
    doc = db["payment_settings"].find_one_and_update(
        {"_id": current["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER
    )
    if doc["is_active"]:
        _deactivate_payment_settings(db, keep_id=current["_id"])
    return serialize_doc(doc)


def delete_payment_settings(db: Database, settings_id: str) -> None:
    current = _get_or_404(db, "payment_settings", settings_id, "Payment settings")
    db["payment_settings"].delete_one({"_id": current["_id"]})
    logger.info("Payment settings %s deleted", settings_id)
