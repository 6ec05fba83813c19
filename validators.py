"""
Checkout and contact form validators.

Each validator returns a dict of field -> message; an empty dict means the
form is valid.
"""
import re
from typing import Dict, Mapping, Optional

from schemas import PaymentMethod

PHONE_RE = re.compile(r"^\d{10}$")
INDIAN_MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
UPI_ID_RE = re.compile(r"^[\w.-]+@\w+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SHIPPING_FIELDS = {
    "name": "Name is required",
    "address": "Address is required",
    "city": "City is required",
    "state": "State is required",
    "postal_code": "Postal code is required",
    "country": "Country is required",
    "phone": "Phone is required",
}

CARD_FIELDS = {
    "card_name": "Name on card is required",
    "card_number": "Card number is required",
    "expiry_date": "Expiry date is required",
    "cvv": "CVV is required",
}


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def validate_shipping(info: Mapping[str, str]) -> Dict[str, str]:
    errors = {field: msg for field, msg in SHIPPING_FIELDS.items() if _blank(info.get(field))}
    # Formatted numbers ("98765-43210") are rejected, not sanitized
    if "phone" not in errors and not PHONE_RE.fullmatch(str(info["phone"])):
        errors["phone"] = "Phone must be 10 digits"
    return errors


def validate_payment(method: Optional[str], details: Mapping[str, str]) -> Dict[str, str]:
    if _blank(method):
        return {"payment_method": "Payment method is required"}
    try:
        method = PaymentMethod(method)
    except ValueError:
        return {"payment_method": "Invalid payment method"}

    errors = {}
    if method == PaymentMethod.credit_card:
        errors.update({f: msg for f, msg in CARD_FIELDS.items() if _blank(details.get(f))})
    elif method == PaymentMethod.upi:
        upi_id = details.get("upi_id")
        if _blank(upi_id):
            errors["upi_id"] = "UPI ID is required"
        elif not UPI_ID_RE.fullmatch(upi_id):
            errors["upi_id"] = "Invalid UPI ID format"
    elif method == PaymentMethod.rupay:
        if _blank(details.get("rupay_id")):
            errors["rupay_id"] = "RuPay ID is required"
    return errors


def validate_contact(data: Mapping[str, str]) -> Dict[str, str]:
    errors = {}
    if _blank(data.get("name")):
        errors["name"] = "Name is required"
    if _blank(data.get("email")):
        errors["email"] = "Email is required"
    elif not EMAIL_RE.fullmatch(data["email"]):
        errors["email"] = "Please enter a valid email address"
    if _blank(data.get("subject")):
        errors["subject"] = "Subject is required"
    if _blank(data.get("message")):
        errors["message"] = "Message is required"
    phone = data.get("phone")
    if phone and not INDIAN_MOBILE_RE.fullmatch(phone):
        errors["phone"] = "Please enter a valid 10-digit phone number"
    return errors
