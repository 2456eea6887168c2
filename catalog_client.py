import json
import logging
import os
import threading
import time
from urllib.error import URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from catalog import normalize_catalog, normalize_product

logger = logging.getLogger(__name__)

CATALOG_API_URL = os.getenv("CATALOG_API_URL", "").strip().rstrip("/")
try:
    CATALOG_TIMEOUT = float(os.getenv("CATALOG_TIMEOUT", "12"))
except ValueError:
    CATALOG_TIMEOUT = 12.0
try:
    SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.5"))
except ValueError:
    SEARCH_DEBOUNCE_SECONDS = 0.5
SEARCH_RESULT_LIMIT = 100


class CatalogUnavailable(Exception):
    pass


def _default_fetch(url, timeout):
    request = Request(url, headers={"Accept": "application/json", "User-Agent": "storefront-catalog/1.0"})
    with urlopen(request, timeout=timeout) as response:
        return response.read().decode("utf-8", errors="ignore")


def _extract_products(payload):
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    if payload.get("success") is False:
        raise CatalogUnavailable(payload.get("error") or "Catalog service reported a failure")
    data = payload.get("data")
    if isinstance(data, dict):
        products = data.get("products")
        if isinstance(products, list):
            return products
        product = data.get("product")
        if isinstance(product, dict):
            return [product]
    products = payload.get("products")
    return products if isinstance(products, list) else []


class CatalogClient:
    def __init__(self, base_url=None, timeout=None, fetch=None):
        self.base_url = (base_url if base_url is not None else CATALOG_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else CATALOG_TIMEOUT
        self._fetch = fetch or _default_fetch
        self._lock = threading.Lock()
        self._search_generation = 0

    def _get(self, path, params=None):
        if not self.base_url:
            raise CatalogUnavailable("No catalog API URL configured")
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        try:
            body = self._fetch(url, self.timeout)
        except (URLError, OSError) as exc:
            raise CatalogUnavailable(f"Catalog request to {url} failed: {exc}") from exc
        try:
            return json.loads(body)
        except (TypeError, ValueError) as exc:
            raise CatalogUnavailable(f"Catalog response from {url} is not JSON") from exc

    def fetch_products(self, active_only=True):
        params = {"isActive": "true"} if active_only else None
        return normalize_catalog(_extract_products(self._get("/laptops/products", params)))

    def fetch_product(self, product_id):
        records = _extract_products(self._get(f"/laptops/products/{quote(str(product_id), safe='')}"))
        return normalize_product(records[0]) if records else None

    def fetch_category(self, category_name, active_only=True):
        normalized = str(category_name or "").strip().lower().replace("-", " ")
        params = {"isActive": "true"} if active_only else None
        path = f"/laptops/categories/{quote(normalized, safe='')}/products"
        return normalize_catalog(_extract_products(self._get(path, params)))

    def search(self, query, limit=SEARCH_RESULT_LIMIT):
        """Search the remote catalog.

        Every call starts a new generation; when a newer search starts before
        this one returns, the stale result is dropped and ``None`` comes back.
        """
        with self._lock:
            self._search_generation += 1
            generation = self._search_generation

        payload = self._get("/laptops/products/search", {"q": str(query or "").strip(), "limit": limit})

        with self._lock:
            if generation != self._search_generation:
                logger.debug("Dropping superseded catalog search %r", query)
                return None
        return normalize_catalog(_extract_products(payload))


class SearchDebouncer:
    """Coalesce rapid search keystrokes into one upstream query.

    Meant for UI clients that own keystroke timing; the HTTP app answers one
    request per query and does not debounce.

    ``submit`` records the latest query; ``poll`` hands it out only once the
    quiet period has elapsed since the last submit, and at most once.
    """

    def __init__(self, quiet_period=None, clock=time.monotonic):
        self.quiet_period = SEARCH_DEBOUNCE_SECONDS if quiet_period is None else quiet_period
        self._clock = clock
        self._pending = None
        self._submitted_at = None
        self._last_released = None

    def submit(self, query):
        self._pending = str(query or "").strip()
        self._submitted_at = self._clock()

    def cancel(self):
        self._pending = None
        self._submitted_at = None

    @property
    def has_pending(self):
        return self._pending is not None

    def poll(self):
        if self._pending is None:
            return None
        if self._clock() - self._submitted_at < self.quiet_period:
            return None
        query = self._pending
        self.cancel()
        if query == self._last_released:
            return None
        self._last_released = query
        return query


def search_when_quiet(client, debouncer):
    query = debouncer.poll()
    if query is None:
        return None
    if not query:
        # a cleared search box goes back to the full catalog
        return client.fetch_products()
    return client.search(query)
