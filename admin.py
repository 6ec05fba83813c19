"""
Back-office controllers for order status and payment-request review.
"""
import logging
from typing import Dict, List, Optional, Tuple

from client import ApiError, StorefrontClient
from schemas import OrderStatus, PaymentRequestStatus

logger = logging.getLogger(__name__)


class OrderStatusBoard:
    """Order rows with a status control per row.

    A successful change updates the row in place. A failed change only
    records the error; the row keeps its current value until ``refresh()``.
    """

    def __init__(self, api: StorefrontClient):
        self.api = api
        self.rows: List[dict] = []
        self.error: Optional[str] = None

    def refresh(self):
        self.rows = self.api.list_orders()
        self.error = None

    def row(self, order_id: str) -> Optional[dict]:
        return next((r for r in self.rows if r["id"] == order_id), None)

    def change_status(self, order_id: str, status: str) -> bool:
        try:
            self.api.update_order_status(order_id, OrderStatus(status.lower()).value)
        except (ApiError, ValueError) as exc:
            self.error = getattr(exc, "message", None) or str(exc)
            return False
        row = self.row(order_id)
        if row is not None:
            row["status"] = status.lower()
        self.error = None
        return True


class PaymentRequestQueue:
    def __init__(self, api: StorefrontClient):
        self.api = api
        self.requests: List[dict] = []
        self.errors: Dict[str, str] = {}

    def refresh(self):
        self.requests = self.api.list_payment_requests()

    @staticmethod
    def actions_for(request: dict) -> Tuple[str, ...]:
        if request.get("status") == PaymentRequestStatus.pending.value:
            return ("approve", "reject")
        return ()

    def _set_status(self, request_id: str, status: PaymentRequestStatus) -> bool:
        try:
            updated = self.api.update_payment_request_status(request_id, status.value)
        except ApiError as exc:
            logger.warning("Payment request %s -> %s failed: %s", request_id, status.value, exc.message)
            self.errors[request_id] = exc.message
            return False
        self.errors.pop(request_id, None)
        self.requests = [updated if r["id"] == request_id else r for r in self.requests]
        return True

    def approve(self, request_id: str) -> bool:
        return self._set_status(request_id, PaymentRequestStatus.completed)

    def reject(self, request_id: str) -> bool:
        return self._set_status(request_id, PaymentRequestStatus.rejected)
