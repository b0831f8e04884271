import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from storefront.config import (
    cart_file,
    load_settings,
    load_store_configs,
    parse_product_id,
    to_composite_id,
)
from storefront.domain import StoreConfig


def test_pairs_shape_wins():
    env = {
        "POS_STORES": "ownerA:s1, ownerB:s2,bad,:s3,ownerC:",
        "POS_OWNER_UID": "ignored",
        "POS_STORE_ID": "ignored",
    }
    assert load_store_configs(env) == (StoreConfig("ownerA", "s1"), StoreConfig("ownerB", "s2"))


def test_owner_with_store_list():
    env = {"POS_OWNER_UID": "ownerA", "POS_STORE_IDS": "s1, s2,,", "POS_STORE_ID": "s9"}
    assert load_store_configs(env) == (StoreConfig("ownerA", "s1"), StoreConfig("ownerA", "s2"))


def test_single_store():
    env = {"POS_OWNER_UID": "ownerA", "POS_STORE_ID": "s1"}
    assert load_store_configs(env) == (StoreConfig("ownerA", "s1"),)


def test_missing_or_invalid_topology_is_empty():
    assert load_store_configs({}) == ()
    assert load_store_configs({"POS_STORE_ID": "s1"}) == ()
    assert load_store_configs({"POS_STORES": "own|er:s1"}) == ()


def test_composite_id_round_trip():
    encoded = to_composite_id("ownerA", "s1", "doc1")
    assert encoded == "ownerA|s1|doc1"
    assert parse_product_id(encoded).get_or_else(None) == ("ownerA", "s1", "doc1")
    assert parse_product_id("doc1").is_none()
    assert parse_product_id("a|b").is_none()


def test_load_settings():
    settings = load_settings(
        {"POS_OWNER_UID": "ownerA", "POS_STORE_ID": "s1", "POS_IN_STOCK_AT_SOURCE": "yes"}
    )
    assert settings.stores == (StoreConfig("ownerA", "s1"),)
    assert settings.in_stock_at_source is True
    assert settings.currency == "GHS"
    assert settings.database_url is None


def test_cart_file_per_customer():
    first = cart_file("data/carts", "cust1")
    second = cart_file("data/carts", "cust2")

    assert first == os.path.join("data/carts", "cart-cust1.json")
    assert first != second
    assert cart_file("data/carts", "../etc/passwd") == os.path.join("data/carts", "cart-.._etc_passwd.json")
    assert cart_file("data/carts", "  ") == os.path.join("data/carts", "cart-anonymous.json")
