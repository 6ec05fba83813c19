import pytest

from pricing import calculate_prices
from schemas import CartItem


def _items(total):
    return [{"price": total, "quantity": 1}]


def test_flat_shipping_at_or_below_threshold():
    assert calculate_prices(_items(9000))["shipping_price"] == 500
    assert calculate_prices(_items(10000))["shipping_price"] == 500


def test_free_shipping_above_threshold():
    assert calculate_prices(_items(15000))["shipping_price"] == 0
    assert calculate_prices(_items(10000.01))["shipping_price"] == 0


@pytest.mark.parametrize("items_price", [0, 1, 999.99, 2000, 12345.67])
def test_tax_and_total(items_price):
    prices = calculate_prices(_items(items_price))
    assert prices["tax_price"] == round(0.18 * items_price, 2)
    assert prices["total_price"] == pytest.approx(
        prices["items_price"] + prices["shipping_price"] + prices["tax_price"]
    )


def test_cod_example_cart():
    prices = calculate_prices([CartItem(product_id="p1", name="Chair", price=1000, quantity=2)])
    assert prices == {"items_price": 2000, "shipping_price": 500, "tax_price": 360.0, "total_price": 2860.0}


def test_custom_threshold_and_rate():
    prices = calculate_prices(_items(300), threshold=250, flat_fee=99, tax_rate=0.05)
    assert prices["shipping_price"] == 0
    assert prices["tax_price"] == 15.0


def test_items_price_is_rounded():
    prices = calculate_prices([{"price": 0.1, "quantity": 3}])
    assert prices["items_price"] == 0.3
