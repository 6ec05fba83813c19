from tests.conftest import SHIPPING
from validators import validate_contact, validate_payment, validate_shipping


def test_valid_shipping():
    assert validate_shipping(SHIPPING) == {}


def test_short_phone_rejected():
    errors = validate_shipping({**SHIPPING, "phone": "98765"})
    assert errors == {"phone": "Phone must be 10 digits"}


def test_formatted_phone_rejected():
    assert "phone" in validate_shipping({**SHIPPING, "phone": "98765-43210"})


def test_missing_city_rejected():
    info = dict(SHIPPING)
    del info["city"]
    assert validate_shipping(info) == {"city": "City is required"}


def test_blank_fields_reported_together():
    errors = validate_shipping({**SHIPPING, "name": " ", "phone": ""})
    assert set(errors) == {"name", "phone"}
    assert errors["phone"] == "Phone is required"


def test_upi_id_format():
    assert validate_payment("upi", {"upi_id": "user@paytm"}) == {}
    assert validate_payment("upi", {"upi_id": "first.last-1@okaxis"}) == {}
    assert validate_payment("upi", {"upi_id": "userpaytm"}) == {"upi_id": "Invalid UPI ID format"}
    assert validate_payment("upi", {"upi_id": ""}) == {"upi_id": "UPI ID is required"}


def test_card_fields_required():
    errors = validate_payment("credit_card", {"card_name": "Asha Rao", "card_number": "4111111111111111"})
    assert set(errors) == {"expiry_date", "cvv"}
    complete = {"card_name": "Asha Rao", "card_number": "4111111111111111", "expiry_date": "12/29", "cvv": "123"}
    assert validate_payment("credit_card", complete) == {}


def test_rupay_id_required():
    assert validate_payment("rupay", {}) == {"rupay_id": "RuPay ID is required"}
    assert validate_payment("rupay", {"rupay_id": "RP-1234"}) == {}


def test_method_required_and_known():
    assert validate_payment("", {}) == {"payment_method": "Payment method is required"}
    assert validate_payment("bitcoin", {}) == {"payment_method": "Invalid payment method"}


def test_cod_and_paypal_need_no_details():
    assert validate_payment("cod", {}) == {}
    assert validate_payment("paypal", {}) == {}


def test_contact_form():
    message = {"name": "Asha", "email": "asha@example.com", "subject": "Delivery", "message": "When?"}
    assert validate_contact(message) == {}
    assert validate_contact({**message, "email": "asha@"}) == {"email": "Please enter a valid email address"}
    assert validate_contact({**message, "phone": "1234567890"}) == {
        "phone": "Please enter a valid 10-digit phone number"
    }
    assert set(validate_contact({})) == {"name", "email", "subject", "message"}


def test_trailing_newline_rejected():
    assert validate_shipping({**SHIPPING, "phone": "9876543210\n"}) == {"phone": "Phone must be 10 digits"}
    assert validate_payment("upi", {"upi_id": "user@paytm\n"}) == {"upi_id": "Invalid UPI ID format"}
