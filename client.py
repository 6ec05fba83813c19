"""
HTTP client for the storefront API.

Credentials live on an explicit ``Session`` handed to the client; nothing is
read from global state. Every response is the server envelope
``{"success", "data", "count", "message"}`` and the client returns ``data``.
"""
import logging
from typing import Any, Dict, Optional

import requests

import config

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."
NETWORK_ERROR = "Unable to reach the server. Please check your connection and try again."


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class Session:
    """Current credentials. An admin token wins over a customer token."""

    def __init__(self, token: Optional[str] = None, admin_token: Optional[str] = None,
                 user: Optional[dict] = None):
        self.token = token
        self.admin_token = admin_token
        self.user = user or {}

    @property
    def credential(self) -> Optional[str]:
        return self.admin_token or self.token

    @property
    def email(self) -> Optional[str]:
        return self.user.get("email")

    def sign_out(self):
        self.token = None
        self.admin_token = None
        self.user = {}


class StorefrontClient:
    def __init__(self, base_url: str = config.API_BASE_URL, session: Optional[Session] = None,
                 http=None, timeout: float = config.API_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or Session()
        # Anything with a requests-style request() method
        self.http = http or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.session.credential:
            headers["Authorization"] = f"Bearer {self.session.credential}"
        return headers

    def request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(NETWORK_ERROR) from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400 or not body.get("success", False):
            raise ApiError(body.get("message") or GENERIC_ERROR, resp.status_code)
        return body.get("data")

    # ----- Auth -----

    def login(self, email: str, password: str, admin: bool = False) -> dict:
        data = self.request("POST", "/auth/login", json={"email": email, "password": password})
        if admin:
            self.session.admin_token = data["access_token"]
        else:
            self.session.token = data["access_token"]
        self.session.user = data["user"]
        return data["user"]

    # ----- Catalog -----

    def list_categories(self) -> list:
        return self.request("GET", "/categories")

    def create_category(self, name: str, description: str = "", image=None) -> dict:
        files = {"image": image} if image is not None else None
        return self.request("POST", "/admin/categories", data={"name": name, "description": description},
                            files=files)

    def update_category(self, category_id: str, **fields) -> dict:
        return self.request("PUT", f"/admin/categories/{category_id}", data=fields)

    def delete_category(self, category_id: str) -> dict:
        return self.request("DELETE", f"/admin/categories/{category_id}")

    def list_products(self, **params) -> list:
        return self.request("GET", "/products", params=params)

    def list_reviews(self, product_id: str) -> list:
        return self.request("GET", f"/products/{product_id}/reviews")

    def add_review(self, product_id: str, rating: int, comment: str) -> dict:
        return self.request("POST", f"/products/{product_id}/reviews", json={"rating": rating, "comment": comment})

    # ----- Orders -----

    def create_order(self, order_data: dict) -> dict:
        return self.request("POST", "/orders", json=order_data)

    def my_orders(self) -> list:
        return self.request("GET", "/orders/myorders")

    def get_order(self, order_id: str) -> dict:
        return self.request("GET", f"/orders/{order_id}")

    def list_orders(self) -> list:
        return self.request("GET", "/orders")

    def update_order_status(self, order_id: str, status: str) -> dict:
        return self.request("PATCH", f"/orders/{order_id}/status", json={"status": status})

    # ----- Payment requests -----

    def create_payment_request(self, order_id: str, amount: float, payment_method: str,
                               notes: Optional[str] = None) -> dict:
        body = {"order_id": order_id, "amount": amount, "payment_method": payment_method, "notes": notes}
        return self.request("POST", "/payment-requests", json=body)

    def my_payment_requests(self) -> list:
        return self.request("GET", "/payment-requests")

    def list_payment_requests(self) -> list:
        return self.request("GET", "/payment-requests/all")

    def update_payment_request_status(self, request_id: str, status: str, notes: Optional[str] = None) -> dict:
        body = {"status": status}
        if notes is not None:
            body["notes"] = notes
        return self.request("PATCH", f"/payment-requests/{request_id}/status", json=body)

    def payment_settings(self) -> dict:
        """Active account details to show before a bank or UPI transfer."""
        return self.request("GET", "/payment-settings")

    def save_payment_settings(self, settings: dict, settings_id: Optional[str] = None) -> dict:
        if settings_id:
            return self.request("PUT", f"/payment-settings/{settings_id}", json=settings)
        return self.request("POST", "/payment-settings", json=settings)

    # ----- Contact -----

    def send_message(self, message: dict) -> dict:
        return self.request("POST", "/contact", json=message)

    def list_messages(self) -> list:
        return self.request("GET", "/admin/messages")
