import random

import pytest

from ranking import (
    SORT_STRATEGIES,
    best_deals,
    best_seller_score,
    best_sellers,
    sort_products,
    top_picks,
)


def _ids(products):
    return [product["id"] for product in products]


def test_price_low_and_high(catalog_products):
    assert _ids(sort_products(catalog_products, "price-low")) == ["d", "a", "b", "c", "e"]
    assert _ids(sort_products(catalog_products, "price-high")) == ["e", "c", "b", "a", "d"]


def test_rating_discount_and_newest(catalog_products):
    assert _ids(sort_products(catalog_products, "rating")) == ["e", "c", "a", "b", "d"]
    assert _ids(sort_products(catalog_products, "discount")) == ["a", "b", "c", "e", "d"]
    assert _ids(sort_products(catalog_products, "newest")) == ["c", "e", "a", "b", "d"]


def test_relevance_and_unknown_modes_keep_catalog_order(catalog_products):
    assert sort_products(catalog_products, "relevance") == catalog_products
    assert sort_products(catalog_products, "most-wanted") == catalog_products
    assert sort_products(catalog_products, None) == catalog_products


def test_sort_returns_new_list(catalog_products):
    snapshot = list(catalog_products)
    result = sort_products(catalog_products, "price-high")
    assert result is not catalog_products
    assert catalog_products == snapshot


def test_best_seller_score_formula(product_factory):
    product = product_factory(rating=4, reviewsCount=10, soldCount=100)
    assert best_seller_score(product) == pytest.approx(4 * 10 * 0.3 + 100 * 0.7)


def test_best_seller_score_treats_missing_factors_as_zero(product_factory):
    product = product_factory(rating=None, reviewsCount=None, soldCount=None)
    assert best_seller_score(product) == 0


def test_best_sellers_order(catalog_products):
    expected = sorted(catalog_products, key=best_seller_score, reverse=True)
    assert sort_products(catalog_products, "best-sellers") == expected
    assert _ids(best_sellers(catalog_products, limit=2)) == _ids(expected[:2])


def test_near_equal_best_seller_scores_order_reproducibly(product_factory):
    lower = product_factory(_id="lower", rating=5, reviewsCount=20, soldCount=0)
    higher = product_factory(_id="higher", rating=5, reviewsCount=20, soldCount=0.0000001 / 0.7)
    assert best_seller_score(higher) > best_seller_score(lower)
    for products in ([lower, higher], [higher, lower]):
        for _ in range(3):
            assert _ids(sort_products(products, "best-sellers")) == ["higher", "lower"]


@pytest.mark.parametrize("mode", sorted(SORT_STRATEGIES))
def test_equal_keys_keep_relative_order(product_factory, mode):
    products = [
        product_factory(_id=str(index), basePrice=1000, rating=4, reviewsCount=5, soldCount=5,
                        discountPercentage=10, createdAt="2026-01-01T00:00:00Z")
        for index in range(6)
    ]
    assert _ids(sort_products(products, mode)) == [str(index) for index in range(6)]


@pytest.mark.parametrize("mode", sorted(SORT_STRATEGIES))
def test_resorting_is_a_no_op(catalog_products, product_factory, mode):
    rng = random.Random(7)
    products = list(catalog_products) + [
        product_factory(_id=f"x{index}", basePrice=rng.choice([1000, 2000]), rating=rng.choice([3, 4]),
                        discountPercentage=rng.choice([5, 10]), soldCount=rng.choice([1, 2]))
        for index in range(8)
    ]
    once = sort_products(products, mode)
    assert sort_products(once, mode) == once


def test_home_rails(catalog_products):
    assert "d" not in _ids(best_deals(catalog_products))
    assert _ids(best_deals(catalog_products, limit=1)) == ["a"]
    assert _ids(top_picks(catalog_products, limit=2)) == ["e", "c"]
