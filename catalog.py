import json
import logging
import os
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
SNAPSHOT_PATH = os.path.join(DATA_DIR, "catalog_snapshot.json")

CONDITIONS = ["new", "refurbished"]
VARIANT_KINDS = ["MEMORY", "STORAGE"]
VARIANT_KIND_ALIASES = {
    "RAM": "MEMORY",
    "MEMORY": "MEMORY",
    "STORAGE": "STORAGE",
    "SSD": "STORAGE",
}
DEFAULT_WARRANTY_ID = "default"
DEFAULT_WARRANTY_LABEL = "Standard Warranty"

SPEC_KEY_ALIASES = {
    "processor": "processor",
    "cpu": "processor",
    "memory": "memory",
    "ram": "memory",
    "storage": "storage",
    "screen_size": "screen_size",
    "screensize": "screen_size",
    "screen": "screen_size",
}

BRAND_OPTIONS = ["Dell", "HP", "Lenovo", "Apple", "Asus", "Acer"]
MEMORY_OPTIONS = ["4GB", "8GB", "16GB", "32GB"]
STORAGE_OPTIONS = ["128GB", "256GB", "512GB", "1TB"]
PROCESSOR_OPTIONS = ["Intel i3", "Intel i5", "Intel i7", "AMD Ryzen"]
SCREEN_SIZE_OPTIONS = ['13"', '14"', '15.6"', '17"']


def _first_present(record, *keys):
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def to_number(value):
    if value in (None, "") or isinstance(value, bool):
        return 0
    try:
        number = float(str(value).replace(",", "").strip())
    except (TypeError, ValueError):
        return 0
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return int(number) if number.is_integer() else number


def _optional_number(value):
    if value in (None, ""):
        return None
    return to_number(value)


def number_text(value):
    number = to_number(value)
    if isinstance(number, int):
        return str(number)
    return repr(number)


def _to_bool(value, default):
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in {"", "0", "false", "no", "off"}
    return bool(value)


def _to_timestamp(value):
    if value in (None, ""):
        return 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return 0
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def normalize_variant_kind(raw_kind):
    return VARIANT_KIND_ALIASES.get(str(raw_kind or "").strip().upper(), "")


def _normalize_specifications(raw_specs):
    if not isinstance(raw_specs, dict):
        return {}
    specs = {}
    for key, value in raw_specs.items():
        if value in (None, ""):
            continue
        compact_key = str(key).strip().replace("-", "_")
        canonical = SPEC_KEY_ALIASES.get(compact_key.lower(), compact_key)
        # first spelling wins when a record carries both ram and memory
        if canonical in specs:
            continue
        specs[canonical] = value if isinstance(value, (int, float)) else str(value).strip()
    return specs


def _normalize_variants(raw_variants):
    variants = []
    for raw in raw_variants or []:
        if not isinstance(raw, dict):
            continue
        kind = normalize_variant_kind(_first_present(raw, "kind", "type"))
        value = str(raw.get("value") or "").strip()
        if not kind or not value:
            continue
        variants.append(
            {
                "kind": kind,
                "value": value,
                "price_adjustment": to_number(_first_present(raw, "price_adjustment", "priceAdjustment")),
            }
        )
    return variants


def _normalize_warranties(raw_options):
    options = []
    seen = {DEFAULT_WARRANTY_ID}
    for raw in raw_options or []:
        if not isinstance(raw, dict):
            continue
        label = str(_first_present(raw, "label", "duration") or "").strip()
        option_id = str(_first_present(raw, "duration", "label", "id") or "").strip()
        if not option_id or option_id in seen:
            continue
        seen.add(option_id)
        options.append(
            {
                "id": option_id,
                "label": label or option_id,
                "price": max(0, to_number(raw.get("price"))),
            }
        )
    return options


def derive_discount_percentage(base_price, mrp):
    if not mrp or mrp <= base_price:
        return 0
    return int(round((mrp - base_price) * 100.0 / mrp))


def normalize_product(record):
    record = record or {}
    base_price = max(0, to_number(_first_present(record, "base_price", "basePrice", "price")))
    mrp = _optional_number(_first_present(record, "mrp", "originalPrice"))
    if mrp is not None and mrp <= 0:
        mrp = None

    discount = _first_present(record, "discount_percentage", "discountPercentage", "discount")
    stored_discount = None if discount is None else max(0, to_number(discount))
    if mrp is not None:
        discount_percentage = derive_discount_percentage(base_price, mrp)
        if stored_discount is not None and abs(stored_discount - discount_percentage) > 1:
            logger.warning(
                "Product %s lists a %s%% discount but its prices imply %s%%",
                _first_present(record, "id", "_id"),
                stored_discount,
                discount_percentage,
            )
    else:
        discount_percentage = stored_discount or 0

    bulk_price = _optional_number(_first_present(record, "bulk_price", "bulkPrice", "b2bPrice"))
    if bulk_price is not None and bulk_price <= 0:
        bulk_price = None

    condition = str(record.get("condition") or "new").strip().lower()
    if condition not in CONDITIONS:
        condition = "new"

    rating = min(5, max(0, to_number(record.get("rating"))))

    return {
        "id": str(_first_present(record, "id", "_id") or ""),
        "name": str(record.get("name") or record.get("title") or "").strip(),
        "brand": str(record.get("brand") or "").strip(),
        "category": str(record.get("category") or "").strip(),
        "base_price": base_price,
        "mrp": mrp,
        "discount_percentage": discount_percentage,
        "bulk_price": bulk_price,
        "rating": rating,
        "review_count": max(0, to_number(_first_present(record, "review_count", "reviewsCount", "reviewCount"))),
        "units_sold": max(0, to_number(_first_present(record, "units_sold", "soldCount", "unitsSold"))),
        "condition": condition,
        "is_active": _to_bool(_first_present(record, "is_active", "isActive"), True),
        "created_at": _to_timestamp(_first_present(record, "created_at", "createdAt")),
        "specifications": _normalize_specifications(_first_present(record, "specifications", "specs")),
        "configuration_variants": _normalize_variants(
            _first_present(record, "configuration_variants", "configurationVariants")
        ),
        "warranty_options": _normalize_warranties(_first_present(record, "warranty_options", "warrantyOptions")),
        "default_warranty": str(
            _first_present(record, "default_warranty", "defaultWarranty") or DEFAULT_WARRANTY_LABEL
        ).strip(),
    }


def normalize_catalog(records):
    products = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        product = normalize_product(record)
        if not product["id"]:
            logger.warning("Skipping catalog record without an id: %r", product["name"])
            continue
        products.append(product)
    return products


def active_products(products):
    return [product for product in products if product["is_active"]]


def find_product(products, product_id):
    target = str(product_id or "").strip()
    if not target:
        return None
    for product in products:
        if product["id"] == target:
            return product
    return None


def variants_of_kind(product, kind):
    return [variant for variant in product.get("configuration_variants", []) if variant["kind"] == kind]


def load_snapshot_catalog(path=None):
    snapshot_path = path or SNAPSHOT_PATH
    if not os.path.exists(snapshot_path):
        logger.warning("Catalog snapshot %s not found", snapshot_path)
        return []
    try:
        with open(snapshot_path, "r", encoding="utf-8") as snapshot_file:
            data = json.load(snapshot_file)
    except (OSError, ValueError) as exc:
        logger.warning("Catalog snapshot %s unreadable: %s", snapshot_path, exc)
        return []
    if isinstance(data, dict):
        data = (data.get("data") or {}).get("products") or data.get("products") or []
    if not isinstance(data, list):
        return []
    return normalize_catalog(data)


def unique_values(items):
    seen = set()
    ordered = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        ordered.append(item)
    return ordered


def _ordered_options(values, preferred_order):
    value_set = {value for value in values if value not in (None, "")}
    ordered = [value for value in preferred_order if value in value_set]
    for value in sorted(value_set, key=str):
        if value not in ordered:
            ordered.append(value)
    return ordered


def build_facet_options(products):
    catalog_prices = [product["base_price"] for product in products if product["base_price"] > 0]
    price_bounds = {
        "min": min(catalog_prices) if catalog_prices else 0,
        "max": max(catalog_prices) if catalog_prices else 0,
    }

    def spec_values(key):
        return {str(product["specifications"][key]) for product in products if key in product["specifications"]}

    return {
        "brands": _ordered_options(
            unique_values(BRAND_OPTIONS + [product["brand"] for product in products]), BRAND_OPTIONS
        ),
        "categories": _ordered_options({product["category"] for product in products}, []),
        "conditions": list(CONDITIONS),
        "memory": _ordered_options(set(MEMORY_OPTIONS).union(spec_values("memory")), MEMORY_OPTIONS),
        "storage": _ordered_options(set(STORAGE_OPTIONS).union(spec_values("storage")), STORAGE_OPTIONS),
        "processor": list(PROCESSOR_OPTIONS),
        "screen_size": list(SCREEN_SIZE_OPTIONS),
        "price_bounds": price_bounds,
    }
