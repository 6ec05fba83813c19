import logging
import os
import re
import shutil
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import services
from auth import create_access_token, get_admin_user, get_current_user, hash_password, public_user, verify_password
from database import create_document, ensure_object_id, get_db, get_documents, now, serialize_doc
from schemas import (
    CATEGORY_NAME_MAX,
    Category,
    ContactCreate,
    ContactUpdate,
    Envelope,
    LoginRequest,
    OrderCreate,
    OrderPaid,
    OrderStatusUpdate,
    PaymentRequestCreate,
    PaymentRequestStatusUpdate,
    PaymentSettings,
    PaymentSettingsUpdate,
    ProductCreate,
    ProductUpdate,
    ReviewCreate,
    User,
    UserCreate,
)
from validators import validate_contact

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

# FastAPI app
app = FastAPI(title="Furniture Store API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR), name="uploads")


def ok(data: Any = None, count: Optional[int] = None, message: Optional[str] = None,
       pagination: Optional[Dict[str, int]] = None) -> dict:
    envelope = Envelope(data=data, count=count, message=message, pagination=pagination)
    # data is passed through as-is; None fields inside it are meaningful
    return {k: v for k, v in envelope if v is not None or k == "data"}


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": message, "errors": jsonable_encoder(errors)},
    )


def save_upload(file: UploadFile) -> str:
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Please upload an image file")
    name = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(config.UPLOAD_DIR, name), "wb") as out:
        shutil.copyfileobj(file.file, out)
    return f"/uploads/{name}"


# Auth
@app.post("/api/auth/register", status_code=201)
def register(payload: UserCreate, db: Database = Depends(get_db)):
    if db["user"].find_one({"email": payload.email.lower()}):
        raise HTTPException(status_code=400, detail="Email already in use")
    user = User(name=payload.name, email=payload.email.lower(), password_hash=hash_password(payload.password))
    user_id = create_document(db, "user", user)
    return ok(public_user({"_id": user_id, **user.model_dump()}))


@app.post("/api/auth/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    access_token = create_access_token({"sub": str(user["_id"])})
    return ok({"access_token": access_token, "token_type": "bearer", "user": public_user(user)})


@app.get("/api/users/me")
def get_me(current_user: dict = Depends(get_current_user)):
    return ok(public_user(current_user))


# Categories
@app.get("/api/categories")
def list_categories(db: Database = Depends(get_db)):
    cats = get_documents(db, "category", sort=[("name", 1)])
    return ok(cats, count=len(cats))


@app.get("/api/categories/{category_id}")
def get_category(category_id: str, db: Database = Depends(get_db)):
    cat = db["category"].find_one({"_id": ensure_object_id(category_id)})
    if not cat:
        raise HTTPException(status_code=404, detail=f"Category not found with id of {category_id}")
    return ok(serialize_doc(cat))


@app.post("/api/admin/categories", status_code=201)
def create_category(
    name: str = Form(...),
    description: str = Form(""),
    image_url: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    admin: dict = Depends(get_admin_user),
):
    name = name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name is required")
    if len(name) > CATEGORY_NAME_MAX:
        raise HTTPException(status_code=400, detail="Name can not be more than 50 characters")
    if services.category_name_taken(db, name):
        raise HTTPException(status_code=400, detail="Category with this name already exists")
    category = Category(name=name, description=description.strip(), slug=services.unique_slug(db, name))
    if image is not None and image.filename:
        category.image = save_upload(image)
    elif image_url:
        category.image = image_url
    category_id = create_document(db, "category", category)
    logger.info("Category %s created: %s", category_id, category.slug)
    return ok(serialize_doc(db["category"].find_one({"_id": ensure_object_id(category_id)})))


@app.put("/api/admin/categories/{category_id}")
def update_category(
    category_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    admin: dict = Depends(get_admin_user),
):
    oid = ensure_object_id(category_id)
    current = db["category"].find_one({"_id": oid})
    if not current:
        raise HTTPException(status_code=404, detail=f"Category not found with id of {category_id}")
    update: Dict[str, Any] = {}
    if name is not None:
        name = name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Category name is required")
        if len(name) > CATEGORY_NAME_MAX:
            raise HTTPException(status_code=400, detail="Name can not be more than 50 characters")
    if name and name != current["name"]:
        if services.category_name_taken(db, name, exclude_id=oid):
            raise HTTPException(status_code=400, detail="Category with this name already exists")
        update["name"] = name
        update["slug"] = services.unique_slug(db, name, exclude_id=oid)
    if description is not None:
        update["description"] = description.strip()
    if image is not None and image.filename:
        update["image"] = save_upload(image)
    elif image_url:
        update["image"] = image_url
    update["updated_at"] = now()
    db["category"].update_one({"_id": oid}, {"$set": update})
    return ok(serialize_doc(db["category"].find_one({"_id": oid})))


@app.delete("/api/admin/categories/{category_id}")
def delete_category(category_id: str, db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    services.delete_category(db, category_id)
    return ok({})


# Products
SORTS = {
    "price_asc": [("price", 1)],
    "price_desc": [("price", -1)],
    "newest": [("created_at", -1)],
    "name": [("name", 1)],
}


@app.get("/api/products")
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    featured: Optional[bool] = None,
    sort: Optional[str] = None,
    page: int = 1,
    limit: int = 12,
    db: Database = Depends(get_db),
):
    query: Dict[str, Any] = {}
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    if category:
        # Accept either a category id or its slug
        cat = db["category"].find_one({"slug": category.lower()})
        query["category"] = str(cat["_id"]) if cat else category
    if min_price is not None or max_price is not None:
        price: Dict[str, float] = {}
        if min_price is not None:
            price["$gte"] = min_price
        if max_price is not None:
            price["$lte"] = max_price
        query["price"] = price
    if featured is not None:
        query["featured"] = featured

    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    total = db["product"].count_documents(query)
    cursor = db["product"].find(query)
    if sort in SORTS:
        cursor = cursor.sort(SORTS[sort])
    items = [serialize_doc(p) for p in cursor.skip((page - 1) * limit).limit(limit)]
    pages = (total + limit - 1) // limit
    return ok(items, count=len(items), pagination={"page": page, "limit": limit, "total": total, "pages": pages})


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    p = db["product"].find_one({"_id": ensure_object_id(product_id)})
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    product = serialize_doc(p)
    product["reviews"] = services.list_reviews(db, product_id)
    return ok(product)


def _require_category(db: Database, category_id: str):
    if not db["category"].find_one({"_id": ensure_object_id(category_id)}):
        raise HTTPException(status_code=400, detail=f"Category not found with id of {category_id}")


@app.post("/api/products", status_code=201)
def create_product(body: ProductCreate, db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    _require_category(db, body.category)
    product_id = create_document(db, "product", {**body.model_dump(), "rating": 0, "num_reviews": 0})
    return ok(serialize_doc(db["product"].find_one({"_id": ensure_object_id(product_id)})))


@app.put("/api/products/{product_id}")
def update_product(product_id: str, body: ProductUpdate, db: Database = Depends(get_db),
                   admin: dict = Depends(get_admin_user)):
    update = body.model_dump(exclude_none=True)
    if "category" in update:
        _require_category(db, update["category"])
    update["updated_at"] = now()
    res = db["product"].update_one({"_id": ensure_object_id(product_id)}, {"$set": update})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Product not found")
    return ok(serialize_doc(db["product"].find_one({"_id": ensure_object_id(product_id)})))


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    res = db["product"].delete_one({"_id": ensure_object_id(product_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Product not found")
    db["review"].delete_many({"product_id": str(ensure_object_id(product_id))})
    return ok({})


# Reviews
@app.get("/api/products/{product_id}/reviews")
def product_reviews(product_id: str, db: Database = Depends(get_db)):
    reviews = services.list_reviews(db, product_id)
    return ok(reviews, count=len(reviews))


@app.post("/api/products/{product_id}/reviews", status_code=201)
def add_review(product_id: str, body: ReviewCreate, db: Database = Depends(get_db),
               current_user: dict = Depends(get_current_user)):
    return ok(services.add_review(db, current_user, product_id, body), message="Review added successfully")


# Orders
@app.post("/api/orders", status_code=201)
def create_order(payload: OrderCreate, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    return ok(services.create_order(db, current_user, payload))


@app.get("/api/orders")
def admin_orders(db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    orders = get_documents(db, "order", sort=[("created_at", -1)])
    return ok(orders, count=len(orders))


@app.get("/api/orders/myorders")
def my_orders(db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    orders = get_documents(db, "order", {"user_id": str(current_user["_id"])}, sort=[("created_at", -1)])
    return ok(orders, count=len(orders))


@app.get("/api/orders/{order_id}")
def order_detail(order_id: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    order = services.get_order(db, order_id)
    if order["user_id"] != str(current_user["_id"]) and not current_user.get("is_admin"):
        raise HTTPException(status_code=404, detail=f"Order not found with id of {order_id}")
    return ok(order)


@app.api_route("/api/orders/{order_id}/status", methods=["PATCH", "PUT"])
def update_order_status(order_id: str, body: OrderStatusUpdate, db: Database = Depends(get_db),
                        admin: dict = Depends(get_admin_user)):
    return ok(services.update_order_status(db, order_id, body.status))


@app.put("/api/orders/{order_id}/pay")
def mark_order_paid(order_id: str, body: OrderPaid, db: Database = Depends(get_db),
                    admin: dict = Depends(get_admin_user)):
    return ok(services.mark_order_paid(db, order_id, body.id, body.status, body.email_address, body.update_time))


# Payment requests
@app.post("/api/payment-requests", status_code=201)
def create_payment_request(body: PaymentRequestCreate, db: Database = Depends(get_db),
                           current_user: dict = Depends(get_current_user)):
    return ok(services.create_payment_request(
        db, current_user, body.order_id, body.amount, body.payment_method, body.notes, body.transaction_id
    ))


@app.get("/api/payment-requests")
def my_payment_requests(db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    requests = get_documents(db, "payment_request", {"user_id": str(current_user["_id"])}, sort=[("created_at", -1)])
    data = [services.with_order(db, r) for r in requests]
    return ok(data, count=len(data))


@app.get("/api/payment-requests/all")
def all_payment_requests(db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    data = [services.with_order(db, r) for r in get_documents(db, "payment_request", sort=[("created_at", -1)])]
    return ok(data, count=len(data))


@app.get("/api/payment-requests/{request_id}")
def get_payment_request(request_id: str, db: Database = Depends(get_db),
                        current_user: dict = Depends(get_current_user)):
    request = services.get_payment_request(db, request_id)
    if request["user_id"] != str(current_user["_id"]) and not current_user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not authorized to access this payment request")
    return ok(services.with_order(db, request))


@app.api_route("/api/payment-requests/{request_id}/status", methods=["PATCH", "PUT"])
def update_payment_request_status(request_id: str, body: PaymentRequestStatusUpdate,
                                  db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    return ok(services.update_payment_request_status(db, request_id, body.status, body.notes))


@app.put("/api/payment-requests/{request_id}/proof")
def upload_payment_proof(request_id: str, payment_proof: UploadFile = File(...), db: Database = Depends(get_db),
                         current_user: dict = Depends(get_current_user)):
    services.get_payment_request(db, request_id)
    return ok(services.attach_payment_proof(db, current_user, request_id, save_upload(payment_proof)))


# Payment settings
@app.get("/api/payment-settings")
def get_payment_settings(db: Database = Depends(get_db)):
    return ok(services.active_payment_settings(db))


@app.get("/api/payment-settings/all")
def all_payment_settings(db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    settings = get_documents(db, "payment_settings", sort=[("created_at", -1)])
    return ok(settings, count=len(settings))


@app.post("/api/payment-settings", status_code=201)
def create_payment_settings(body: PaymentSettings, db: Database = Depends(get_db),
                            admin: dict = Depends(get_admin_user)):
    return ok(services.create_payment_settings(db, body))


@app.put("/api/payment-settings/{settings_id}")
def update_payment_settings(settings_id: str, body: PaymentSettingsUpdate, db: Database = Depends(get_db),
                            admin: dict = Depends(get_admin_user)):
    return ok(services.update_payment_settings(db, settings_id, body.model_dump(exclude_none=True)))


@app.delete("/api/payment-settings/{settings_id}")
def delete_payment_settings(settings_id: str, db: Database = Depends(get_db), admin: dict = Depends(get_admin_user)):
    services.delete_payment_settings(db, settings_id)
    return ok({})

# Contact messages
@app.post("/api/contact", status_code=201)
def send_message(body: ContactCreate, db: Database = Depends(get_db)):
    errors = validate_contact(body.model_dump())
    if errors:
        raise HTTPException(status_code=400, detail=next(iter(errors.values())))
    message_id = create_document(db, "contact", {**body.model_dump(), "status": "unread"})
    logger.info("Contact message %s received", message_id)
    return ok(serialize_doc(db["contact"].find_one({"_id": ensure_object_id(message_id)})))


messages = APIRouter(dependencies=[Depends(get_admin_user)])


@messages.get("")
def list_messages(db: Database = Depends(get_db)):
    data = get_documents(db, "contact", sort=[("created_at", -1)])
    return ok(data, count=len(data))


@messages.get("/{message_id}")
def get_message(message_id: str, db: Database = Depends(get_db)):
    msg = db["contact"].find_one({"_id": ensure_object_id(message_id)})
    if not msg:
        raise HTTPException(status_code=404, detail=f"Message not found with id of {message_id}")
    return ok(serialize_doc(msg))


@messages.api_route("/{message_id}", methods=["PATCH", "PUT"])
def update_message(message_id: str, body: ContactUpdate, db: Database = Depends(get_db)):
    res = db["contact"].update_one({"_id": ensure_object_id(message_id)},
                                   {"$set": {"status": body.status, "updated_at": now()}})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail=f"Message not found with id of {message_id}")
    return ok(serialize_doc(db["contact"].find_one({"_id": ensure_object_id(message_id)})))


@messages.delete("/{message_id}")
def delete_message(message_id: str, db: Database = Depends(get_db)):
    res = db["contact"].delete_one({"_id": ensure_object_id(message_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail=f"Message not found with id of {message_id}")
    return ok({})


# Older front-end builds call the admin inbox under several paths
app.include_router(messages, prefix="/api/contact")
for alias in ("/api/admin/contact", "/api/admin/messages", "/api/admin-messages"):
    app.include_router(messages, prefix=alias, include_in_schema=False)


# Health + seed
@app.get("/")
def root():
    return {"message": "Furniture Store API running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "collections": []
    }
    try:
        response["collections"] = db.list_collection_names()[:10]
    except Exception as e:
        response["error"] = str(e)[:120]
    return response


SEED_CATEGORIES = [
    {"name": "Living Room", "description": "Sofas, armchairs and coffee tables"},
    {"name": "Dining", "description": "Dining tables and chairs"},
    {"name": "Office", "description": "Desks and office chairs"},
]

SEED_PRODUCTS = [
    {"name": "Luxury Sofa", "description": "Three-seater sofa in velvet upholstery", "price": 12999,
     "category": "Living Room", "stock": 10, "featured": True, "material": "Velvet", "color": "Emerald",
     "images": ["https://images.unsplash.com/photo-1555041469-a586c61ea9bc"]},
    {"name": "Wooden Dining Table", "description": "Solid sheesham six-seater dining table", "price": 8999,
     "category": "Dining", "stock": 5, "material": "Sheesham wood",
     "images": ["https://images.unsplash.com/photo-1533090161767-e6ffed986c88"]},
    {"name": "Executive Office Chair", "description": "Ergonomic high-back chair with lumbar support",
     "price": 5999, "category": "Office", "stock": 25, "material": "Leatherette", "color": "Black",
     "images": ["https://images.unsplash.com/photo-1580480055273-228ff5388ef8"]},
]


@app.post("/api/seed/init")
def seed(db: Database = Depends(get_db)):
    if not db["user"].find_one({"email": "admin@example.com"}):
        admin = User(name="Admin", email="admin@example.com", password_hash=hash_password("Admin@123"), is_admin=True)
        create_document(db, "user", admin)
    category_ids = {}
    for c in SEED_CATEGORIES:
        existing = db["category"].find_one({"name": c["name"]})
        if existing:
            category_ids[c["name"]] = str(existing["_id"])
        else:
            category = Category(**c, slug=services.unique_slug(db, c["name"]))
            category_ids[c["name"]] = create_document(db, "category", category)
    for p in SEED_PRODUCTS:
        if not db["product"].find_one({"name": p["name"]}):
            product = ProductCreate(**{**p, "category": category_ids[p["category"]]})
            create_document(db, "product", {**product.model_dump(), "rating": 0, "num_reviews": 0})
    return ok({"categories": db["category"].count_documents({}), "products": db["product"].count_documents({})})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
