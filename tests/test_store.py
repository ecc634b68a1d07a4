# tests/test_store.py
import pytest

from app.core import _to_float, _to_int, product_in_from_payload, _make_product_fields
from app.database import ProductStore, SEED_PRODUCTS


@pytest.fixture
def store(tmp_path):
    s = ProductStore(tmp_path / "store.db")
    s.reset()
    return s


@pytest.mark.parametrize("raw,expected", [
    ("12.5", 12.5),
    ("12.5abc", 12.5),
    ("  -3", -3.0),
    (".5", 0.5),
    ("1e2", 100.0),
    ("abc", 0.0),
    ("", 0.0),
    (None, 0.0),
    (7, 7.0),
    ("1e999", 0.0),
    (float("inf"), 0.0),
    (float("nan"), 0.0),
])
def test_to_float(raw, expected):
    assert _to_float(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("1", 1),
    ("0", 0),
    ("2.9", 2),
    ("yes", 0),
    (True, 1),
    (False, 0),
    (None, 0),
    ("9223372036854775807", 2 ** 63 - 1),
    ("99999999999999999999", 0),
    (2 ** 63, 0),
    (-(2 ** 63) - 1, 0),
    (1e30, 0),
    (float("inf"), 0),
    (float("nan"), 0),
    ("1" * 5000, 0),
])
def test_to_int(raw, expected):
    assert _to_int(raw) == expected


def test_payload_whitelist_keeps_only_product_fields():
    p = product_in_from_payload({"name": "A", "price": "3", "id": 5, "is_admin": "1"})
    assert _make_product_fields(p) == {"name": "A", "price": 3.0}


def test_reset_seeds_catalog(store):
    products = store.list_products()
    assert [p.name for p in products] == [row[0] for row in SEED_PRODUCTS]
    assert products[2].is_active == 0

    store.create_product({"name": "extra"})
    store.reset()
    assert len(store.list_products()) == len(SEED_PRODUCTS)


def test_create_defaults(store):
    new_id = store.create_product({"name": "Bare"})
    p = store.get_product(new_id)
    assert p.price == 0.0
    assert p.internal_cost == 0.0
    assert p.is_active == 1
    assert p.description is None


def test_update_without_fields_reports_existence(store):
    assert store.update_product(1, {}) is True
    assert store.update_product(404, {}) is False


def test_update_ignores_non_whitelisted_columns(store):
    assert store.update_product(1, {"id": 50, "price": 1.0}) is True
    assert store.get_product(1).price == 1.0
    assert store.get_product(50) is None


def test_search_escapes_like_wildcards(store):
    store.create_product({"name": "100% cotton"})
    store.create_product({"name": "snake_case"})
    assert [p.name for p in store.search_products("0% c")] == ["100% cotton"]
    assert [p.name for p in store.search_products("e_c")] == ["snake_case"]
    assert store.search_products("\\") == []


def test_search_is_case_insensitive(store):
    assert [p.name for p in store.search_products("widget")] == ["Vulnerable Widget"]


def test_delete(store):
    assert store.delete_product(1) is True
    assert store.delete_product(1) is False
    assert store.get_product(1) is None
