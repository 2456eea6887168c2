import os
from math import ceil
from urllib.parse import urlencode

from flask import Flask, jsonify, request, url_for

from cart import add_to_cart, matches_service_total, summarize_cart
from catalog import (
    SNAPSHOT_PATH,
    active_products,
    build_facet_options,
    find_product,
    load_snapshot_catalog,
)
from catalog_client import CATALOG_API_URL, CatalogClient, CatalogUnavailable
from criteria import (
    SORT_OPTIONS,
    build_active_chips,
    criteria_query_map,
    has_active_filters,
    parse_criteria,
    remove_param,
)
from filters import apply_filters
from pricing import (
    BULK_THRESHOLD,
    ConfigurationRequired,
    InvalidQuantity,
    PricingError,
    default_configuration,
    quote_product,
    to_money,
    warranty_choices,
)
from ranking import best_deals, best_seller_score, best_sellers, sort_products, top_picks

app = Flask(__name__)
app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", "dev-secret-key-change-me")
app.config["CATALOG_API_URL"] = CATALOG_API_URL
app.config["CATALOG_SNAPSHOT_PATH"] = os.getenv("CATALOG_SNAPSHOT_PATH", "").strip() or SNAPSHOT_PATH

PER_PAGE_OPTIONS = [12, 24, 48, 60, 120]
DEFAULT_PER_PAGE = 24
HOME_RAIL_DEFAULT_LIMIT = 10


def _to_int(value):
    if value in (None, ""):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _money(value):
    amount = to_money(value)
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def _catalog_client():
    base_url = app.config.get("CATALOG_API_URL") or ""
    client = app.extensions.get("catalog_client")
    if client is None or client.base_url != base_url.rstrip("/"):
        client = CatalogClient(base_url=base_url)
        app.extensions["catalog_client"] = client
    return client


def _load_catalog(query=""):
    if app.config.get("CATALOG_API_URL"):
        client = _catalog_client()
        try:
            if query:
                results = client.search(query)
                if results is not None:
                    return active_products(results)
            return active_products(client.fetch_products())
        except CatalogUnavailable as exc:
            app.logger.warning("Catalog service unavailable, using snapshot: %s", exc)

    return active_products(load_snapshot_catalog(app.config["CATALOG_SNAPSHOT_PATH"]))


def _public_product(product):
    payload = dict(product)
    for key in ("base_price", "mrp", "bulk_price"):
        if payload[key] is not None:
            payload[key] = _money(payload[key])
    payload["best_seller_score"] = best_seller_score(product)
    return payload


def _public_quote(quote):
    payload = dict(quote)
    for key in ("unit_price", "line_total", "retail_unit_price", "bulk_unit_price"):
        payload[key] = _money(payload[key])
    return payload


def _products_url(params):
    flat_params = []
    for key, values in params.items():
        for value in values:
            flat_params.append((key, value))
    if not flat_params:
        return url_for("api_products")
    return f"{url_for('api_products')}?{urlencode(flat_params)}"


@app.errorhandler(ConfigurationRequired)
def handle_configuration_required(error):
    return (
        jsonify(
            {
                "error": str(error),
                "product_id": error.product_id,
                "missing": [kind.lower() for kind in error.missing_kinds],
            }
        ),
        400,
    )


@app.errorhandler(InvalidQuantity)
def handle_invalid_quantity(error):
    return jsonify({"error": str(error)}), 400


@app.errorhandler(PricingError)
def handle_pricing_error(error):
    return jsonify({"error": str(error)}), 400


@app.route("/")
def root():
    return jsonify({"message": "Storefront catalog engine running"})


@app.route("/api/sort-options")
def api_sort_options():
    return jsonify([{"value": value, "label": label} for value, label in SORT_OPTIONS])


@app.route("/api/products")
def api_products():
    criteria = parse_criteria(request.args)

    per_page = _to_int(request.args.get("per_page")) or DEFAULT_PER_PAGE
    if per_page not in PER_PAGE_OPTIONS:
        per_page = DEFAULT_PER_PAGE
    page = _to_int(request.args.get("page")) or 1
    if page < 1:
        page = 1

    catalog = _load_catalog(criteria["q"])
    filtered = apply_filters(catalog, criteria)
    ranked = sort_products(filtered, criteria["sort"])

    total_results = len(ranked)
    total_pages = max(1, ceil(total_results / per_page)) if total_results else 1
    if page > total_pages:
        page = total_pages

    start_index = (page - 1) * per_page
    visible = ranked[start_index:start_index + per_page]

    query_map = criteria_query_map(criteria)
    if per_page != DEFAULT_PER_PAGE:
        query_map["per_page"] = [str(per_page)]

    active_chips = []
    for chip in build_active_chips(criteria):
        chip["remove_url"] = _products_url(remove_param(query_map, chip["key"], chip["value"]))
        active_chips.append(chip)

    prev_url = None
    if page > 1:
        prev_params = {key: list(values) for key, values in query_map.items()}
        if page - 1 > 1:
            prev_params["page"] = [str(page - 1)]
        prev_url = _products_url(prev_params)

    next_url = None
    if page < total_pages:
        next_params = {key: list(values) for key, values in query_map.items()}
        next_params["page"] = [str(page + 1)]
        next_url = _products_url(next_params)

    app.logger.debug("Catalog query %s matched %d of %d products", dict(criteria), total_results, len(catalog))

    return jsonify(
        {
            "products": [_public_product(product) for product in visible],
            "criteria": {key: list(value) if isinstance(value, tuple) else value for key, value in criteria.items()},
            "counts": {
                "total": total_results,
                "shown": len(visible),
                "from": start_index + 1 if total_results else 0,
                "to": start_index + len(visible),
            },
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total_pages": total_pages,
                "has_prev": page > 1,
                "has_next": page < total_pages,
                "prev_url": prev_url,
                "next_url": next_url,
            },
            "active_chips": active_chips,
            "has_active_filters": has_active_filters(criteria),
            "clear_url": _products_url({"sort": [criteria["sort"]]} if "sort" in query_map else {}),
            "options": build_facet_options(catalog),
        }
    )


@app.route("/api/home")
def api_home():
    limit = _to_int(request.args.get("limit")) or HOME_RAIL_DEFAULT_LIMIT
    catalog = _load_catalog()
    return jsonify(
        {
            "best_sellers": [_public_product(product) for product in best_sellers(catalog, limit)],
            "best_deals": [_public_product(product) for product in best_deals(catalog, limit)],
            "top_picks": [_public_product(product) for product in top_picks(catalog, limit)],
        }
    )


@app.route("/api/products/<product_id>")
def api_product_detail(product_id):
    product = find_product(_load_catalog(), product_id)
    if not product:
        return jsonify({"error": "Product not found.", "product_id": product_id}), 404

    configuration = default_configuration(product)
    quote = quote_product(product, configuration["memory"], configuration["storage"])
    return jsonify(
        {
            "product": _public_product(product),
            "warranty_choices": warranty_choices(product),
            "default_configuration": configuration,
            "quote": _public_quote(quote),
        }
    )


@app.route("/api/products/<product_id>/quote")
def api_product_quote(product_id):
    product = find_product(_load_catalog(), product_id)
    if not product:
        return jsonify({"error": "Product not found.", "product_id": product_id}), 404

    quote = quote_product(
        product,
        request.args.get("memory"),
        request.args.get("storage"),
        request.args.get("warranty"),
        request.args.get("quantity", "1"),
    )
    payload = _public_quote(quote)
    if quote["requires_bulk_contact"]:
        payload["message"] = (
            f"For orders of {BULK_THRESHOLD} or more units, please contact our admin team for bulk pricing."
        )
    return jsonify(payload)


@app.route("/api/cart/summary", methods=["POST"])
def api_cart_summary():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        return jsonify({"error": "Request body must be a JSON object with an items list."}), 400

    catalog = _load_catalog()
    items = []
    for line in payload["items"]:
        if not isinstance(line, dict):
            return jsonify({"error": "Each cart item must be a JSON object."}), 400
        product = find_product(catalog, line.get("product_id"))
        if not product:
            return jsonify({"error": "Product not found.", "product_id": line.get("product_id")}), 404
        add_to_cart(
            items,
            product,
            quantity=line.get("quantity", 1),
            memory=line.get("memory"),
            storage=line.get("storage"),
            warranty=line.get("warranty"),
        )

    priced_lines, summary = summarize_cart(items)
    response = {
        "items": [
            dict(
                line,
                unit_price=_money(line["unit_price"]),
                reference_price=_money(line["reference_price"]),
                line_total=_money(line["line_total"]),
            )
            for line in priced_lines
        ],
        "summary": {key: _money(value) for key, value in summary.items()},
    }
    if payload.get("service_total") is not None:
        response["matches_service_total"] = matches_service_total(summary, payload["service_total"])
    return jsonify(response)


if __name__ == "__main__":
    debug = os.getenv("FLASK_DEBUG", "1").strip().lower() in {"1", "true", "yes", "on"}
    use_reloader = os.getenv("FLASK_RELOAD", "1").strip().lower() in {"1", "true", "yes", "on"}
    host = os.getenv("FLASK_HOST", "127.0.0.1").strip() or "127.0.0.1"
    port_raw = os.getenv("PORT", "5000").strip()
    try:
        port = int(port_raw)
    except ValueError:
        port = 5000
    app.run(host=host, port=port, debug=debug, use_reloader=use_reloader)
