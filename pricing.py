import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from catalog import DEFAULT_WARRANTY_ID, VARIANT_KINDS, variants_of_kind

logger = logging.getLogger(__name__)

# Product-owned business rules, not engineering invariants.
BULK_THRESHOLD = 10
BULK_DISCOUNT_FACTOR = Decimal("0.85")

RETAIL_TIER = "retail"
BULK_TIER = "bulk"
TIERS = (RETAIL_TIER, BULK_TIER)
TIER_LABELS = {RETAIL_TIER: "B2C Pricing", BULK_TIER: "B2B Pricing"}

CENT = Decimal("0.01")
ZERO = Decimal("0")


class PricingError(ValueError):
    pass


class ConfigurationRequired(PricingError):
    def __init__(self, product_id, missing_kinds):
        self.product_id = product_id
        self.missing_kinds = list(missing_kinds)
        names = " and ".join(kind.lower() for kind in self.missing_kinds)
        super().__init__(f"Select {names} for product {product_id} before pricing it")


class InvalidQuantity(PricingError):
    def __init__(self, quantity):
        self.quantity = quantity
        super().__init__(f"Quantity must be a whole number of at least 1, got {quantity!r}")


def to_money(value):
    if value in (None, ""):
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def round_money(amount):
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_quantity(quantity):
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity)
    if isinstance(quantity, float) and not quantity.is_integer():
        raise InvalidQuantity(quantity)
    try:
        parsed = int(str(quantity).strip()) if isinstance(quantity, str) else int(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity) from None
    if parsed < 1:
        raise InvalidQuantity(quantity)
    return parsed


def resolve_tier(quantity):
    return BULK_TIER if validate_quantity(quantity) >= BULK_THRESHOLD else RETAIL_TIER


def warranty_choices(product):
    choices = [{"id": DEFAULT_WARRANTY_ID, "label": product["default_warranty"], "price": 0}]
    choices.extend(dict(option) for option in product.get("warranty_options", []))
    return choices


def warranty_surcharge(product, warranty_id):
    warranty_id = str(warranty_id or "").strip()
    if not warranty_id or warranty_id == DEFAULT_WARRANTY_ID:
        return ZERO
    for option in product.get("warranty_options", []):
        if option["id"] == warranty_id:
            return to_money(option["price"])
    logger.debug("Warranty %r not offered for product %s", warranty_id, product.get("id"))
    return ZERO


def variant_adjustment(product, kind, value):
    value = str(value or "").strip()
    if not value:
        return ZERO
    for variant in variants_of_kind(product, kind):
        if variant["value"] == value:
            return to_money(variant["price_adjustment"])
    logger.debug("No %s variant %r for product %s", kind.lower(), value, product.get("id"))
    return ZERO


def missing_selections(product, memory, storage):
    selected = {"MEMORY": memory, "STORAGE": storage}
    missing = []
    for kind in VARIANT_KINDS:
        if variants_of_kind(product, kind) and not str(selected[kind] or "").strip():
            missing.append(kind)
    return missing


def default_configuration(product):
    configuration = {}
    for kind in VARIANT_KINDS:
        variants = variants_of_kind(product, kind)
        if not variants:
            configuration[kind.lower()] = None
            continue
        base_variant = next((variant for variant in variants if variant["price_adjustment"] == 0), variants[0])
        configuration[kind.lower()] = base_variant["value"]
    return configuration


def tier_base_price(product, tier):
    base_price = to_money(product.get("base_price"))
    if tier != BULK_TIER:
        return base_price
    if product.get("bulk_price") is not None:
        return to_money(product["bulk_price"])
    return base_price * BULK_DISCOUNT_FACTOR


def price_product(product, memory, storage, warranty_id=None, quantity=1, tier=None):
    quantity = validate_quantity(quantity)
    missing = missing_selections(product, memory, storage)
    if missing:
        raise ConfigurationRequired(product.get("id"), missing)

    if tier is None:
        tier = resolve_tier(quantity)
    elif tier not in TIERS:
        raise PricingError(f"Unknown pricing tier {tier!r}")

    unit_price = (
        tier_base_price(product, tier)
        + warranty_surcharge(product, warranty_id)
        + variant_adjustment(product, "MEMORY", memory)
        + variant_adjustment(product, "STORAGE", storage)
    )
    if unit_price < ZERO:
        unit_price = ZERO
    return {"unit_price": round_money(unit_price), "tier": tier}


def quote_product(product, memory, storage, warranty_id=None, quantity=1):
    quantity = validate_quantity(quantity)
    retail = price_product(product, memory, storage, warranty_id, quantity, tier=RETAIL_TIER)
    bulk = price_product(product, memory, storage, warranty_id, quantity, tier=BULK_TIER)
    tier = resolve_tier(quantity)
    unit_price = bulk["unit_price"] if tier == BULK_TIER else retail["unit_price"]
    return {
        "product_id": product.get("id"),
        "quantity": quantity,
        "tier": tier,
        "tier_label": TIER_LABELS[tier],
        "unit_price": unit_price,
        "line_total": unit_price * quantity,
        "retail_unit_price": retail["unit_price"],
        "bulk_unit_price": bulk["unit_price"],
        "bulk_price_label": "B2B Price" if product.get("bulk_price") is not None else "15% additional off",
        "bulk_threshold": BULK_THRESHOLD,
        "requires_bulk_contact": tier == BULK_TIER,
    }
