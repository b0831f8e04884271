import math
from typing import Optional

from .config import to_composite_id
from .domain import Product, StoreConfig
from .images import resolve_image_urls


# ============ Приведение полей документа ============


def to_number(value) -> float:
    """Число или числовая строка → float; всё остальное → 0"""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_price(value) -> float:
    return max(to_number(value), 0.0)


def to_stock(value) -> int:
    return max(int(to_number(value)), 0)


def first_text(raw: dict, *keys: str) -> str:
    """Первое непустое строковое значение среди ключей (обрезанное), иначе ''"""
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def text(raw: dict, key: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def optional_text(raw: dict, *keys: str) -> Optional[str]:
    return first_text(raw, *keys) or None


# ============ Документ инвентаря → Product ============


def normalize(origin: StoreConfig, doc_id: str, raw: dict, composite: bool = True) -> Product:
    """
    Приводит сырой документ инвентаря магазина origin к Product.
    composite=True → id вида owner|store|doc, иначе голый id документа.
    """
    product_id = (
        to_composite_id(origin.owner_id, origin.store_id, doc_id) if composite else doc_id
    )
    return Product(
        id=product_id,
        name=first_text(raw, "name", "model"),
        description=text(raw, "description"),
        price=to_price(raw.get("price")),
        stock=to_stock(raw.get("stock")),
        category=text(raw, "category"),
        is_accessory=raw.get("isAccessory") is True,
        is_custom_item=raw.get("isCustomItem") is True,
        color=optional_text(raw, "color", "colour"),
        storage=optional_text(raw, "storage", "storageCapacity"),
        image_urls=resolve_image_urls(raw),
        store_locations=(origin,),
        created_at=raw.get("createdAt"),
    )
