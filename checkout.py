"""
Three-step checkout wizard: shipping -> payment -> review -> success.

Forward moves are gated by the validator of the current step; ``back()`` is
free and keeps everything entered so far. Nothing reaches the server until
``place_order()`` runs the simulator for the selected payment method.
"""
import logging
from enum import IntEnum
from typing import Dict, List, Optional

import config
from client import ApiError, StorefrontClient
from payments import simulate_payment
from pricing import calculate_prices
from schemas import CartItem
from validators import validate_payment, validate_shipping

logger = logging.getLogger(__name__)

ORDER_FAILED = "Failed to place order. Please try again."


class Cart:
    def __init__(self, items: Optional[List[CartItem]] = None):
        self.items: List[CartItem] = list(items or [])

    def add(self, item: CartItem):
        for existing in self.items:
            if existing.product_id == item.product_id:
                existing.quantity += item.quantity
                return
        self.items.append(item)

    def remove(self, product_id: str):
        self.items = [i for i in self.items if i.product_id != product_id]

    def clear(self):
        self.items = []

    @property
    def total(self) -> float:
        return sum(i.price * i.quantity for i in self.items)

    def __len__(self):
        return len(self.items)


class CheckoutStep(IntEnum):
    SHIPPING = 1
    PAYMENT = 2
    REVIEW = 3
    SUCCESS = 4


class CheckoutWizard:
    def __init__(self, cart: Cart, api: StorefrontClient, delay: float = config.PAYMENT_SIMULATION_DELAY):
        if not len(cart):
            raise ValueError("Cannot check out an empty cart")
        self.cart = cart
        self.api = api
        self.delay = delay
        self.step = CheckoutStep.SHIPPING
        user = api.session.user
        self.shipping: Dict[str, str] = {
            "name": user.get("name", ""),
            "address": "",
            "city": "",
            "state": "",
            "postal_code": "",
            "country": "India",
            "phone": "",
            "email": user.get("email", ""),
        }
        self.payment_method = "cod"
        self.payment_details: Dict[str, str] = {
            "card_name": "",
            "card_number": "",
            "expiry_date": "",
            "cvv": "",
            "upi_id": "",
            "rupay_id": "",
        }
        self.errors: Dict[str, str] = {}
        self.order_id: Optional[str] = None
        self.order: Optional[dict] = None

    def update_shipping(self, **fields):
        self.shipping.update(fields)

    def select_payment(self, method: str, **details):
        self.payment_method = method
        self.payment_details.update(details)

    def next_step(self) -> bool:
        if self.step == CheckoutStep.SHIPPING:
            self.errors = validate_shipping(self.shipping)
        elif self.step == CheckoutStep.PAYMENT:
            self.errors = validate_payment(self.payment_method, self.payment_details)
        else:
            return False
        if self.errors:
            return False
        self.step = CheckoutStep(self.step + 1)
        return True

    def back(self) -> bool:
        if self.step in (CheckoutStep.SHIPPING, CheckoutStep.SUCCESS):
            return False
        self.step = CheckoutStep(self.step - 1)
        return True

    @property
    def prices(self) -> Dict[str, float]:
        return calculate_prices(self.cart.items)

    def order_data(self) -> dict:
        """The order snapshot sent to the server; method-specific fields never leave the wizard."""
        shipping = {k: v for k, v in self.shipping.items() if v or k != "email"}
        return {
            "order_items": [item.model_dump() for item in self.cart.items],
            "shipping_address": shipping,
            "payment_method": self.payment_method,
            **self.prices,
        }

    def place_order(self) -> bool:
        if self.step != CheckoutStep.REVIEW:
            return False
        self.errors = {}
        try:
            self.order = simulate_payment(self.payment_method, self.order_data(), self.api.create_order,
                                          email=self.api.session.email, delay=self.delay)
        except ApiError as exc:
            logger.warning("Order placement failed: %s", exc.message)
            self.errors = {"submit": exc.message or ORDER_FAILED}
            return False
        except ValueError as exc:
            self.errors = {"submit": str(exc) or ORDER_FAILED}
            return False

        self.order_id = self.order["id"]
        self.cart.clear()
        self.step = CheckoutStep.SUCCESS
        return True
