"""
Database Schemas for the Furniture Store

Each Pydantic model below either represents a MongoDB document or a request
body. Stored field names are snake_case; status values are lowercase.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class PaymentMethod(str, Enum):
    credit_card = "credit_card"
    paypal = "paypal"
    upi = "upi"
    rupay = "rupay"
    cod = "cod"


# Methods whose payment is confirmed by an admin rather than the gateway
MANUAL_VERIFICATION_METHODS = {PaymentMethod.upi, PaymentMethod.rupay}


class OrderStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentRequestStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    rejected = "rejected"
    cancelled = "cancelled"


def _lowercase(v):
    return v.strip().lower() if isinstance(v, str) else v


# ----- Users -----

class User(BaseModel):
    name: str
    email: EmailStr
    password_hash: Optional[str] = None
    is_admin: bool = False


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserPublic(BaseModel):
    id: str
    name: str
    email: EmailStr
    is_admin: bool = False


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ----- Catalog -----

CATEGORY_NAME_MAX = 50


class Category(BaseModel):
    name: str = Field(..., max_length=CATEGORY_NAME_MAX)
    slug: str
    description: Optional[str] = Field(None, max_length=500)
    image: str = "no-image.jpg"


class Dimensions(BaseModel):
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


class ProductCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: str = Field(..., max_length=2000)
    price: float = Field(..., ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    category: str
    stock: int = Field(..., ge=0)
    images: List[str] = []
    featured: bool = False
    material: Optional[str] = None
    color: Optional[str] = None
    dimensions: Optional[Dimensions] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    featured: Optional[bool] = None
    material: Optional[str] = None
    color: Optional[str] = None
    dimensions: Optional[Dimensions] = None


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=500)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v):
        return v.strip() if isinstance(v, str) else v


class Review(BaseModel):
    product_id: str
    user_id: str
    user_name: str
    rating: int = Field(..., ge=1, le=5)
    comment: str


# ----- Cart & orders -----

class CartItem(BaseModel):
    product_id: str
    name: str
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class OrderItem(BaseModel):
    product_id: str
    name: str
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class ShippingAddress(BaseModel):
    name: str
    address: str
    city: str
    state: str
    postal_code: str
    country: str = "India"
    phone: str = Field(..., pattern=r"^\d{10}$")
    email: Optional[EmailStr] = None


class PaymentResult(BaseModel):
    id: str
    status: str
    update_time: str
    email_address: Optional[str] = None


class OrderCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    order_items: List[OrderItem] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items_price: float = Field(..., ge=0)
    tax_price: float = Field(..., ge=0)
    shipping_price: float = Field(..., ge=0)
    total_price: float = Field(..., ge=0)
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    payment_result: Optional[PaymentResult] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        return _lowercase(v)


class Order(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    order_items: List[OrderItem]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_result: Optional[PaymentResult] = None
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    status: OrderStatus = OrderStatus.pending.value
    delivered_at: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _lowercase(v)


class OrderPaid(BaseModel):
    id: str
    status: str = "completed"
    update_time: Optional[str] = None
    email_address: Optional[str] = None


# ----- Payment requests -----

class PaymentRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    order_id: str
    amount: float = Field(..., ge=0)
    payment_method: str
    transaction_id: Optional[str] = None
    status: PaymentRequestStatus = PaymentRequestStatus.pending.value
    notes: Optional[str] = None
    payment_proof: Optional[str] = None


class PaymentRequestCreate(BaseModel):
    order_id: str
    amount: float = Field(..., ge=0)
    payment_method: str = Field(..., pattern=r"^(credit_card|paypal|upi|rupay|bank_transfer|cod)$")
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentRequestStatusUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: PaymentRequestStatus
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _lowercase(v)


# ----- Payment settings -----

class PaymentSettings(BaseModel):
    """Account details shown to buyers who pay by bank transfer or UPI."""
    account_number: str = Field(..., min_length=1)
    ifsc_code: str = Field(..., min_length=1)
    account_holder: str = Field(..., min_length=1)
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    upi_id: Optional[str] = None
    is_active: bool = True


class PaymentSettingsUpdate(BaseModel):
    account_number: Optional[str] = Field(None, min_length=1)
    ifsc_code: Optional[str] = Field(None, min_length=1)
    account_holder: Optional[str] = Field(None, min_length=1)
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    upi_id: Optional[str] = None
    is_active: Optional[bool] = None


# ----- Contact messages -----

class ContactCreate(BaseModel):
    name: str = Field(..., max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    subject: str = Field(..., max_length=100)
    message: str = Field(..., max_length=1000)


class ContactUpdate(BaseModel):
    status: str = Field(..., pattern=r"^(unread|read)$")


# ----- Response envelope -----

class Envelope(BaseModel):
    success: bool = True
    data: Any = None
    count: Optional[int] = None
    message: Optional[str] = None
    pagination: Optional[Dict[str, int]] = None
