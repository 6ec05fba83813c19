from typing import Dict, Iterable, Union

import config
from schemas import CartItem, OrderItem

Item = Union[CartItem, OrderItem, dict]


def _line(item: Item):
    if isinstance(item, dict):
        return item["price"], item["quantity"]
    return item.price, item.quantity


def calculate_prices(items: Iterable[Item],
                     threshold: float = config.FREE_SHIPPING_THRESHOLD,
                     flat_fee: float = config.FLAT_SHIPPING_FEE,
                     tax_rate: float = config.TAX_RATE) -> Dict[str, float]:
    """Derive the order price components from cart lines.

    Shipping is free only when the items total is strictly above ``threshold``.
    """
    items_price = round(sum(price * qty for price, qty in map(_line, items)), 2)
    shipping_price = 0 if items_price > threshold else flat_fee
    tax_price = round(tax_rate * items_price, 2)
    return {
        "items_price": items_price,
        "shipping_price": shipping_price,
        "tax_price": tax_price,
        "total_price": round(items_price + shipping_price + tax_price, 2),
    }
