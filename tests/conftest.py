import json

import pytest

from catalog import normalize_product


def make_product(**overrides):
    record = {
        "_id": "p-1",
        "name": "Test Laptop",
        "brand": "Dell",
        "category": "windows",
        "basePrice": 40000,
        "rating": 4,
        "reviewsCount": 10,
        "soldCount": 20,
        "condition": "new",
        "specifications": {},
    }
    record.update(overrides)
    return normalize_product(record)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def configurable_product():
    return make_product(
        _id="cfg-1",
        name="Configurable Laptop",
        basePrice=50000,
        mrp=60000,
        configurationVariants=[
            {"type": "RAM", "value": "8GB", "priceAdjustment": 0},
            {"type": "RAM", "value": "16GB", "priceAdjustment": 2000},
            {"type": "STORAGE", "value": "512GB", "priceAdjustment": 0},
            {"type": "STORAGE", "value": "1TB", "priceAdjustment": 1000},
        ],
        warrantyOptions=[{"duration": "2 Years Extended", "price": 1500}],
        defaultWarranty="12 months",
    )


@pytest.fixture
def catalog_products():
    return [
        make_product(
            _id="a",
            name="Latitude 5420",
            brand="Dell",
            category="business laptops",
            basePrice=32999,
            discountPercentage=40,
            rating=4.4,
            reviewsCount=100,
            soldCount=400,
            createdAt="2025-11-02T09:30:00Z",
            specifications={"processor": "Intel Core i5 11th Gen", "ram": "8GB DDR4", "storage": "256GB SSD", "screenSize": '14"'},
        ),
        make_product(
            _id="b",
            name="EliteBook 840",
            brand="HP",
            category="business laptops",
            basePrice=38499,
            discountPercentage=38,
            rating=4.2,
            reviewsCount=80,
            soldCount=260,
            createdAt="2025-10-18T12:00:00Z",
            specifications={"processor": "Intel Core i7 11th Gen", "ram": "16GB DDR4", "storage": "512GB SSD", "screenSize": '14"'},
        ),
        make_product(
            _id="c",
            name="ThinkPad E14",
            brand="Lenovo",
            category="windows",
            basePrice=62990,
            discountPercentage=16,
            rating=4.5,
            reviewsCount=50,
            soldCount=120,
            createdAt="2026-02-11T08:15:00Z",
            specifications={"processor": "AMD Ryzen 5 7530U", "ram": "16GB DDR4", "storage": "512GB SSD", "screenSize": '14"'},
        ),
        make_product(
            _id="d",
            name="Aspire 3",
            brand="Acer",
            category="windows",
            basePrice=27990,
            rating=3.9,
            reviewsCount=40,
            soldCount=300,
            createdAt="2025-08-30T07:00:00Z",
            specifications={"processor": "Intel Core i3 1215U", "ram": "8GB DDR4", "storage": "512GB SSD"},
        ),
        make_product(
            _id="e",
            name="MacBook Air M2",
            brand="Apple",
            category="macbook",
            condition="refurbished",
            basePrice=99900,
            discountPercentage=13,
            rating=4.8,
            reviewsCount=300,
            soldCount=90,
            createdAt="2026-01-05T10:00:00Z",
            specifications={"processor": "Apple M2", "ram": "8GB Unified", "storage": "256GB SSD", "screenSize": '13.6"'},
        ),
    ]


SNAPSHOT_RECORDS = [
    {
        "_id": "lp-1",
        "name": "Latitude 5420",
        "brand": "Dell",
        "category": "business laptops",
        "condition": "refurbished",
        "isActive": True,
        "basePrice": 50000,
        "mrp": 60000,
        "rating": 4.4,
        "reviewsCount": 100,
        "soldCount": 400,
        "specifications": {"processor": "Intel Core i5", "ram": "8GB DDR4", "storage": "512GB SSD", "screenSize": '14"'},
        "configurationVariants": [
            {"type": "RAM", "value": "8GB", "priceAdjustment": 0},
            {"type": "RAM", "value": "16GB", "priceAdjustment": 2000},
            {"type": "STORAGE", "value": "512GB", "priceAdjustment": 0},
            {"type": "STORAGE", "value": "1TB", "priceAdjustment": 1000},
        ],
        "warrantyOptions": [{"duration": "2 Years Extended", "price": 1500}],
        "defaultWarranty": "12 months",
    },
    {
        "_id": "lp-2",
        "name": "Aspire 3",
        "brand": "Acer",
        "category": "windows",
        "condition": "new",
        "isActive": True,
        "basePrice": 27990,
        "rating": 3.9,
        "reviewsCount": 40,
        "soldCount": 300,
        "specifications": {"processor": "Intel Core i3", "ram": "8GB DDR4", "storage": "256GB SSD"},
    },
    {
        "_id": "lp-3",
        "name": "Vostro 3400",
        "brand": "Dell",
        "category": "windows",
        "condition": "refurbished",
        "isActive": False,
        "basePrice": 21999,
        "specifications": {"processor": "Intel Core i3", "ram": "8GB DDR4", "storage": "256GB SSD"},
    },
]


@pytest.fixture
def snapshot_path(tmp_path):
    path = tmp_path / "catalog_snapshot.json"
    path.write_text(json.dumps({"success": True, "data": {"products": SNAPSHOT_RECORDS}}), encoding="utf-8")
    return str(path)


@pytest.fixture
def client(snapshot_path):
    from app import app as flask_app

    original = dict(flask_app.config)
    flask_app.config.update(TESTING=True, CATALOG_API_URL="", CATALOG_SNAPSHOT_PATH=snapshot_path)
    with flask_app.test_client() as test_client:
        yield test_client
    flask_app.config.clear()
    flask_app.config.update(original)
