import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from storefront.categories import classify, filter_by_category, in_stock
from storefront.domain import ACCESSORIES, ALL, CUSTOM, DEVICES, SCREENS


def test_custom_flag_wins_over_screen_name():
    item = {"name": "Custom Screen Protector", "isCustomItem": True, "category": "Screens"}
    assert classify(item) == CUSTOM


def test_custom_item_category_string():
    assert classify({"name": "Gift card", "category": "Custom Item"}) == CUSTOM


def test_screen_by_name_overrides_accessory():
    """Название со screen важнее флага аксессуара"""
    item = {"name": "iPhone Screen Replacement", "category": "Accessory", "isCustomItem": False}
    assert classify(item) == SCREENS


def test_screen_by_category_and_display():
    assert classify({"name": "Panel", "category": "screens"}) == SCREENS
    assert classify({"name": "Retina Display kit"}) == SCREENS


def test_accessory_and_device_fallback():
    assert classify({"name": "Charger", "isAccessory": True}) == ACCESSORIES
    assert classify({"name": "Cable", "category": "ACCESSORY"}) == ACCESSORIES
    assert classify({"name": "iPhone 13", "category": "Phone"}) == DEVICES
    assert classify({}) == DEVICES


def test_classify_is_deterministic():
    item = {"name": "MagSafe Display Stand", "isAccessory": True}
    assert {classify(item) for _ in range(5)} == {SCREENS}


def test_filter_by_category_all_and_tab():
    items = (
        {"name": "iPhone 13"},
        {"name": "Case", "isAccessory": True},
        {"name": "Screen"},
    )
    assert filter_by_category(items, ALL) == items
    assert filter_by_category(items, ACCESSORIES) == (items[1],)
    assert filter_by_category(items, DEVICES) == (items[0],)


def test_in_stock_accepts_numeric_strings():
    assert in_stock({"stock": 2})
    assert in_stock({"stock": "3"})
    assert not in_stock({"stock": 0})
    assert not in_stock({"stock": "n/a"})
    assert not in_stock({})


def test_model_field_used_when_name_missing():
    assert classify({"model": "iPad Display Assembly", "isAccessory": True}) == SCREENS
    assert classify({"name": "", "model": "LCD Screen"}) == SCREENS
