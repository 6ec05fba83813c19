import pytest

from checkout import Cart, CheckoutStep, CheckoutWizard
from client import Session, StorefrontClient
from schemas import CartItem
from tests.conftest import SHIPPING


@pytest.fixture
def cart():
    return Cart([CartItem(product_id="p-chair", name="Teak Chair", image="/uploads/chair.jpg", price=1000, quantity=2)])


@pytest.fixture
def wizard(cart, customer_client):
    return CheckoutWizard(cart, customer_client, delay=0)


def _to_review(wizard, method="cod", **details):
    wizard.update_shipping(**SHIPPING)
    assert wizard.next_step()
    wizard.select_payment(method, **details)
    assert wizard.next_step()
    assert wizard.step == CheckoutStep.REVIEW


def test_empty_cart_cannot_check_out(customer_client):
    with pytest.raises(ValueError):
        CheckoutWizard(Cart(), customer_client)


def test_shipping_prefilled_from_session(wizard, customer):
    assert wizard.shipping["name"] == customer["name"]
    assert wizard.shipping["email"] == customer["email"]
    assert wizard.shipping["country"] == "India"


def test_invalid_shipping_blocks_progress(wizard):
    wizard.update_shipping(**{**SHIPPING, "phone": "98765"})
    assert not wizard.next_step()
    assert wizard.step == CheckoutStep.SHIPPING
    assert "phone" in wizard.errors


def test_invalid_payment_blocks_progress(wizard):
    wizard.update_shipping(**SHIPPING)
    wizard.next_step()
    wizard.select_payment("upi", upi_id="userpaytm")
    assert not wizard.next_step()
    assert wizard.step == CheckoutStep.PAYMENT
    assert wizard.errors == {"upi_id": "Invalid UPI ID format"}


def test_back_keeps_entered_data(wizard):
    _to_review(wizard, "upi", upi_id="asha@okaxis")
    assert wizard.back() and wizard.back()
    assert wizard.step == CheckoutStep.SHIPPING
    assert not wizard.back()
    assert wizard.shipping["city"] == "Bengaluru"
    assert wizard.payment_method == "upi"
    assert wizard.payment_details["upi_id"] == "asha@okaxis"


def test_order_data_excludes_payment_details(wizard):
    _to_review(wizard, "credit_card", card_name="Asha Rao", card_number="4111111111111111",
               expiry_date="12/29", cvv="123")
    data = wizard.order_data()
    assert "payment_details" not in data
    assert "4111111111111111" not in str(data)
    assert data["total_price"] == 2860


def test_place_order_only_from_review(wizard):
    assert not wizard.place_order()
    assert wizard.order_id is None


def test_cod_order_end_to_end(wizard, cart, customer_client):
    _to_review(wizard, "cod")
    assert wizard.place_order()

    assert wizard.step == CheckoutStep.SUCCESS
    assert len(cart) == 0
    order = customer_client.get_order(wizard.order_id)
    assert order["items_price"] == 2000
    assert order["shipping_price"] == 500
    assert order["tax_price"] == 360
    assert order["total_price"] == 2860
    assert order["is_paid"] is False
    assert order["status"] == "pending"
    assert not wizard.back()


def test_upi_order_is_pending_and_queued_for_review(wizard, customer_client):
    _to_review(wizard, "upi", upi_id="asha@okaxis")
    assert wizard.place_order()

    order = customer_client.get_order(wizard.order_id)
    assert order["is_paid"] is False
    assert order["payment_result"]["status"] == "pending"
    requests = customer_client.my_payment_requests()
    assert [r["order_id"] for r in requests] == [wizard.order_id]


def test_card_order_is_paid(wizard, customer_client, customer):
    _to_review(wizard, "credit_card", card_name="Asha Rao", card_number="4111111111111111",
               expiry_date="12/29", cvv="123")
    assert wizard.place_order()

    order = customer_client.get_order(wizard.order_id)
    assert order["is_paid"] is True
    assert order["paid_at"]
    assert order["payment_result"]["email_address"] == customer["email"]
    assert customer_client.my_payment_requests() == []


def test_failed_submission_keeps_cart(cart, api):
    client = StorefrontClient(base_url="http://testserver/api", session=Session(token="not-a-token"), http=api)
    wizard = CheckoutWizard(cart, client, delay=0)
    _to_review(wizard, "cod")

    assert not wizard.place_order()
    assert wizard.step == CheckoutStep.REVIEW
    assert wizard.errors == {"submit": "Could not validate credentials"}
    assert len(cart) == 1
    assert wizard.order_id is None


def test_cart_merges_same_product(cart):
    cart.add(CartItem(product_id="p-chair", name="Teak Chair", price=1000, quantity=1))
    cart.add(CartItem(product_id="p-lamp", name="Floor Lamp", price=2500, quantity=1))
    assert len(cart) == 2
    assert cart.total == 5500
    cart.remove("p-lamp")
    assert cart.total == 3000


def test_phone_with_trailing_newline_stops_at_shipping(wizard):
    wizard.update_shipping(**{**SHIPPING, "phone": "9876543210\n"})
    assert not wizard.next_step()
    assert wizard.step == CheckoutStep.SHIPPING
