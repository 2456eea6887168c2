import logging

logger = logging.getLogger(__name__)

# Product-owned business rules: sales volume outweighs rating-derived popularity.
RATING_POPULARITY_WEIGHT = 0.3
UNITS_SOLD_WEIGHT = 0.7

HOME_RAIL_LIMIT = 10


def best_seller_score(product):
    rating = product.get("rating") or 0
    review_count = product.get("review_count") or 0
    units_sold = product.get("units_sold") or 0
    return (rating * review_count * RATING_POPULARITY_WEIGHT) + (units_sold * UNITS_SOLD_WEIGHT)


def _field(name):
    return lambda product: product.get(name) or 0


SORT_STRATEGIES = {
    "price-low": (_field("base_price"), False),
    "price-high": (_field("base_price"), True),
    "rating": (_field("rating"), True),
    "discount": (_field("discount_percentage"), True),
    "newest": (_field("created_at"), True),
    "best-sellers": (best_seller_score, True),
}


def sort_products(products, mode):
    strategy = SORT_STRATEGIES.get(mode)
    if strategy is None:
        if mode not in (None, "", "relevance"):
            logger.debug("Unknown sort mode %r, keeping catalog order", mode)
        return list(products)
    key, descending = strategy
    # sorted() keeps ties in input order for reverse=True as well
    return sorted(products, key=key, reverse=descending)


def top_products(products, mode, limit=HOME_RAIL_LIMIT):
    if limit is None or limit < 0:
        limit = HOME_RAIL_LIMIT
    return sort_products(products, mode)[:limit]


def best_sellers(products, limit=HOME_RAIL_LIMIT):
    return top_products(products, "best-sellers", limit)


def best_deals(products, limit=HOME_RAIL_LIMIT):
    return top_products([product for product in products if product.get("discount_percentage")], "discount", limit)


def top_picks(products, limit=HOME_RAIL_LIMIT):
    rated = [product for product in products if product.get("review_count")]
    return top_products(rated, "rating", limit)
