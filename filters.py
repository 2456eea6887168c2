import logging
import re

from catalog import number_text

logger = logging.getLogger(__name__)

NUMERIC_QUERY_NOISE = re.compile(r"[%,]")

# selection key -> specification key matched by substring
SPEC_SUBSTRING_FILTERS = [
    ("memory", "memory"),
    ("storage", "storage"),
    ("screen_size", "screen_size"),
]


def _lower(value):
    return str(value if value is not None else "").strip().lower()


def _normalize_category(value):
    return re.sub(r"\s+", " ", _lower(value).replace("-", " "))


def matches_query(product, query):
    needle = _lower(query)
    if not needle:
        return True

    for field in ("name", "brand", "category"):
        if needle in _lower(product.get(field)):
            return True

    numeric_needle = NUMERIC_QUERY_NOISE.sub("", needle)
    if numeric_needle:
        if numeric_needle in number_text(product.get("base_price")):
            return True
        if numeric_needle in number_text(product.get("discount_percentage")):
            return True

    return any(needle in _lower(value) for value in (product.get("specifications") or {}).values())


def matches_price_range(product, min_price, max_price):
    price = product.get("base_price") or 0
    if min_price is not None and price < min_price:
        return False
    if max_price is not None and price > max_price:
        return False
    return True


def _spec_contains(product, spec_key, selected_values):
    if not selected_values:
        return True
    spec_value = (product.get("specifications") or {}).get(spec_key)
    if spec_value in (None, ""):
        return False
    haystack = _lower(spec_value)
    return any(_lower(selected) in haystack for selected in selected_values)


def _brand_matches(brand, selected_values):
    if not selected_values:
        return True
    brand_lower = _lower(brand)
    if not brand_lower:
        return False
    return brand_lower in {_lower(value) for value in selected_values}


def _category_matches(category, selected_values):
    if not selected_values:
        return True
    normalized = _normalize_category(category)
    if not normalized:
        return False
    return normalized in {_normalize_category(value) for value in selected_values}


def _condition_matches(condition, selected_values):
    if not selected_values:
        return True
    return _lower(condition) in {_lower(value) for value in selected_values}


def matches_criteria(product, criteria):
    if criteria["q"] and not matches_query(product, criteria["q"]):
        return False
    if not matches_price_range(product, criteria["min_price"], criteria["max_price"]):
        return False
    if not _brand_matches(product.get("brand"), criteria["brand"]):
        return False
    if not _spec_contains(product, "processor", criteria["processor"]):
        return False
    for selection_key, spec_key in SPEC_SUBSTRING_FILTERS:
        if not _spec_contains(product, spec_key, criteria[selection_key]):
            return False
    if not _category_matches(product.get("category"), criteria["category"]):
        return False
    if not _condition_matches(product.get("condition"), criteria["condition"]):
        return False
    return True


def apply_filters(products, criteria):
    filtered = [product for product in products if matches_criteria(product, criteria)]
    logger.debug("Filtered %d of %d products", len(filtered), len(products))
    return filtered
