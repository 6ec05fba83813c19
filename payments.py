"""
Simulated payment gateways.

No real gateway is integrated. Each simulator waits a fixed delay standing in
for the gateway round-trip, fabricates a ``payment_result`` and hands the
order to ``create_order`` (normally ``StorefrontClient.create_order``).
Whatever ``create_order`` raises propagates to the caller unchanged.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import config
from schemas import PaymentMethod

logger = logging.getLogger(__name__)

CreateOrder = Callable[[dict], dict]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _transaction_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}"


def _submit(order_data: dict, create_order: CreateOrder, prefix: str, paid: bool,
            email: Optional[str]) -> dict:
    result = {
        "id": _transaction_id(prefix),
        "status": "completed" if paid else "pending",
        "update_time": _now_iso(),
    }
    if email:
        result["email_address"] = email
    payload = {**order_data, "is_paid": paid, "payment_result": result}
    if paid:
        payload["paid_at"] = _now_iso()
    logger.info("Submitting %s order (paid=%s, txn=%s)", order_data.get("payment_method"), paid, result["id"])
    return create_order(payload)


def process_credit_card_payment(order_data: dict, create_order: CreateOrder, email: Optional[str] = None,
                                delay: float = config.PAYMENT_SIMULATION_DELAY) -> dict:
    time.sleep(delay)
    return _submit(order_data, create_order, "CARD", True, email)


def process_paypal_payment(order_data: dict, create_order: CreateOrder, email: Optional[str] = None,
                           delay: float = config.PAYMENT_SIMULATION_DELAY) -> dict:
    time.sleep(delay)
    return _submit(order_data, create_order, "PAYPAL", True, email)


def process_rupay_payment(order_data: dict, create_order: CreateOrder, email: Optional[str] = None,
                          delay: float = config.PAYMENT_SIMULATION_DELAY) -> dict:
    time.sleep(delay)
    return _submit(order_data, create_order, "RUPAY", True, email)


def process_upi_payment(order_data: dict, create_order: CreateOrder, email: Optional[str] = None,
                        delay: float = config.PAYMENT_SIMULATION_DELAY) -> dict:
    # Unpaid until an admin verifies the transfer
    time.sleep(delay)
    return _submit(order_data, create_order, "UPI", False, email)


def process_cod_payment(order_data: dict, create_order: CreateOrder, email: Optional[str] = None,
                        delay: float = 0) -> dict:
    return _submit(order_data, create_order, "COD", False, None)


SIMULATORS: Dict[str, Callable[..., dict]] = {
    PaymentMethod.credit_card.value: process_credit_card_payment,
    PaymentMethod.paypal.value: process_paypal_payment,
    PaymentMethod.rupay.value: process_rupay_payment,
    PaymentMethod.upi.value: process_upi_payment,
    PaymentMethod.cod.value: process_cod_payment,
}


def simulate_payment(method: str, order_data: dict, create_order: CreateOrder, email: Optional[str] = None,
                     delay: Optional[float] = None) -> dict:
    try:
        simulator = SIMULATORS[method]
    except KeyError:
        raise ValueError("Invalid payment method")
    if delay is None:
        return simulator(order_data, create_order, email)
    return simulator(order_data, create_order, email, delay=delay)
