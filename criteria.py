from types import MappingProxyType

from catalog import unique_values

SORT_OPTIONS = [
    ("relevance", "Relevance"),
    ("best-sellers", "Best Sellers"),
    ("price-low", "Price: Low to High"),
    ("price-high", "Price: High to Low"),
    ("rating", "Customer Rating"),
    ("discount", "Best Discount"),
    ("newest", "Newest First"),
]
SORT_LABELS = {key: label for key, label in SORT_OPTIONS}
DEFAULT_SORT = "relevance"

SELECTION_KEYS = ["brand", "memory", "storage", "processor", "screen_size", "category", "condition"]
SELECTION_LABELS = {
    "brand": "Brand",
    "memory": "RAM",
    "storage": "Storage",
    "processor": "Processor",
    "screen_size": "Screen",
    "category": "Category",
    "condition": "Condition",
}
PRICE_KEYS = ["min_price", "max_price"]


def _to_price(value):
    if value in (None, ""):
        return None
    try:
        number = float(str(value).replace(",", "").strip())
    except (TypeError, ValueError):
        return None
    if number != number or number < 0 or number == float("inf"):
        return None
    return int(number) if number.is_integer() else number


def _normalize_selection(values):
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    cleaned = [str(value).strip() for value in values if value is not None]
    return tuple(unique_values(value for value in cleaned if value))


def _normalize_sort(value):
    sort = str(value or DEFAULT_SORT).strip().lower()
    return sort if sort in SORT_LABELS else DEFAULT_SORT


def build_criteria(q="", min_price=None, max_price=None, sort=DEFAULT_SORT, **selections):
    unknown = set(selections) - set(SELECTION_KEYS)
    if unknown:
        raise TypeError(f"Unknown criteria fields: {', '.join(sorted(unknown))}")

    min_price = _to_price(min_price)
    max_price = _to_price(max_price)
    if min_price is not None and max_price is not None and min_price > max_price:
        min_price, max_price = max_price, min_price

    criteria = {
        "q": str(q or "").strip(),
        "min_price": min_price,
        "max_price": max_price,
        "sort": _normalize_sort(sort),
    }
    for key in SELECTION_KEYS:
        criteria[key] = _normalize_selection(selections.get(key))
    return MappingProxyType(criteria)


def empty_criteria():
    return build_criteria()


def update_criteria(criteria, **changes):
    merged = dict(criteria)
    merged.update(changes)
    return build_criteria(**merged)


def toggle_selection(criteria, key, value):
    if key not in SELECTION_KEYS:
        raise KeyError(key)
    value = str(value or "").strip()
    current = list(criteria[key])
    if value in current:
        current.remove(value)
    elif value:
        current.append(value)
    return update_criteria(criteria, **{key: current})


def clear_filters(criteria):
    return build_criteria(sort=criteria["sort"])


def has_active_filters(criteria):
    if criteria["q"] or criteria["min_price"] is not None or criteria["max_price"] is not None:
        return True
    return any(criteria[key] for key in SELECTION_KEYS)


def _getlist(args, key):
    if hasattr(args, "getlist"):
        return args.getlist(key)
    value = args.get(key)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def parse_criteria(args):
    # "search" is the query-string name the storefront header uses
    query = args.get("q")
    if query in (None, ""):
        query = args.get("search", "")
    return build_criteria(
        q=query,
        min_price=args.get("min_price"),
        max_price=args.get("max_price"),
        sort=args.get("sort"),
        **{key: _getlist(args, key) for key in SELECTION_KEYS},
    )


def criteria_query_map(criteria):
    params = {}
    if criteria["q"]:
        params["q"] = [criteria["q"]]
    for key in PRICE_KEYS:
        if criteria[key] is not None:
            params[key] = [str(criteria[key])]
    for key in SELECTION_KEYS:
        if criteria[key]:
            params[key] = list(criteria[key])
    if criteria["sort"] != DEFAULT_SORT:
        params["sort"] = [criteria["sort"]]
    return params


def remove_param(params, key, value=None):
    remaining = {}
    for param_key, param_values in params.items():
        if param_key == "page":
            continue
        if param_key == key:
            if value is None:
                continue
            param_values = [entry for entry in param_values if entry != str(value)]
            if not param_values:
                continue
        remaining[param_key] = list(param_values)
    return remaining


def build_active_chips(criteria):
    chips = []

    def add_chip(label, key, value=None):
        chips.append({"label": label, "key": key, "value": value})

    if criteria["q"]:
        add_chip(f'Search: "{criteria["q"]}"', "q")
    if criteria["min_price"] is not None:
        add_chip(f"Min: ₹{criteria['min_price']}", "min_price")
    if criteria["max_price"] is not None:
        add_chip(f"Max: ₹{criteria['max_price']}", "max_price")
    for key in SELECTION_KEYS:
        for value in criteria[key]:
            add_chip(f"{SELECTION_LABELS[key]}: {value}", key, value)
    if criteria["sort"] != DEFAULT_SORT:
        add_chip(f"Sort: {SORT_LABELS[criteria['sort']]}", "sort")
    return chips
