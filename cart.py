import logging
import uuid

from catalog import DEFAULT_WARRANTY_ID
from pricing import BULK_TIER, ZERO, price_product, round_money, to_money, validate_quantity

logger = logging.getLogger(__name__)


class LineItemNotFound(KeyError):
    pass


def _selection_key(product_id, memory, storage, warranty):
    return (product_id, memory or None, storage or None, warranty or DEFAULT_WARRANTY_ID)


def _clean(value):
    value = str(value or "").strip()
    return value or None


def find_line_item(items, item_id):
    for item in items:
        if item["id"] == item_id:
            return item
    raise LineItemNotFound(item_id)


def add_to_cart(items, product, quantity=1, memory=None, storage=None, warranty=None):
    memory = _clean(memory)
    storage = _clean(storage)
    warranty = _clean(warranty) or DEFAULT_WARRANTY_ID
    quantity = validate_quantity(quantity)
    # refuses unpriceable selections before the cart is touched
    price_product(product, memory, storage, warranty, quantity)

    key = _selection_key(product["id"], memory, storage, warranty)
    for item in items:
        if _selection_key(item["product"]["id"], item["memory"], item["storage"], item["warranty"]) == key:
            item["quantity"] += quantity
            return item

    item = {
        "id": uuid.uuid4().hex,
        "product": product,
        "memory": memory,
        "storage": storage,
        "warranty": warranty,
        "quantity": quantity,
    }
    items.append(item)
    return item


def update_quantity(items, item_id, quantity):
    item = find_line_item(items, item_id)
    item["quantity"] = validate_quantity(quantity)
    return item


def remove_item(items, item_id):
    item = find_line_item(items, item_id)
    items.remove(item)
    return item


def clear_cart(items):
    items.clear()


def reference_price(product):
    base_price = to_money(product.get("base_price"))
    mrp = product.get("mrp")
    if mrp is None:
        return base_price
    mrp = to_money(mrp)
    return mrp if mrp >= base_price else base_price


def price_line_item(item):
    product = item["product"]
    priced = price_product(product, item["memory"], item["storage"], item["warranty"], item["quantity"])
    return {
        "id": item["id"],
        "product_id": product["id"],
        "name": product["name"],
        "memory": item["memory"],
        "storage": item["storage"],
        "warranty": item["warranty"],
        "quantity": item["quantity"],
        "tier": priced["tier"],
        "requires_bulk_contact": priced["tier"] == BULK_TIER,
        "unit_price": priced["unit_price"],
        "reference_price": round_money(reference_price(product)),
        "line_total": priced["unit_price"] * item["quantity"],
    }


def price_cart(items):
    return [price_line_item(item) for item in items]


def aggregate_cart(priced_lines):
    grand_total = ZERO
    total_savings = ZERO
    item_count = 0
    for line in priced_lines:
        quantity = line["quantity"]
        unit_price = to_money(line["unit_price"])
        grand_total += unit_price * quantity
        total_savings += (to_money(line["reference_price"]) - unit_price) * quantity
        item_count += quantity
    return {
        "subtotal_before_discount": grand_total + total_savings,
        "total_savings": total_savings,
        "grand_total": grand_total,
        "item_count": item_count,
    }


def summarize_cart(items):
    priced_lines = price_cart(items)
    return priced_lines, aggregate_cart(priced_lines)


def matches_service_total(summary, service_total):
    expected = to_money(service_total)
    if summary["grand_total"] == expected:
        return True
    logger.warning(
        "Cart total %s differs from cart service total %s; the service total is authoritative",
        summary["grand_total"],
        expected,
    )
    return False
