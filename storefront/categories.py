from typing import Callable, Iterable, Tuple, TypeVar

from .domain import ACCESSORIES, ALL, CUSTOM, DEVICES, SCREENS, Product

P = TypeVar("P", Product, dict)


def _field(item, name: str, default=None):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _category(item) -> str:
    return str(_field(item, "category") or "").lower()


def _name(item) -> str:
    return str(_field(item, "name") or _field(item, "model") or "").lower()


def _flag(item, attr: str, key: str) -> bool:
    # dict из инвентаря (camelCase) или Product (snake_case)
    value = _field(item, key) if isinstance(item, dict) else _field(item, attr)
    return value is True


def is_custom(item) -> bool:
    return _flag(item, "is_custom_item", "isCustomItem") or _category(item) == "custom item"


def is_screen(item) -> bool:
    name = _name(item)
    return _category(item) in ("screen", "screens") or "screen" in name or "display" in name


def is_accessory(item) -> bool:
    return _flag(item, "is_accessory", "isAccessory") or _category(item) == "accessory"


# Порядок правил важен: первое сработавшее определяет категорию
CATEGORY_RULES: Tuple[Tuple[Callable[[object], bool], str], ...] = (
    (is_custom, CUSTOM),
    (is_screen, SCREENS),
    (is_accessory, ACCESSORIES),
)


def classify(item) -> str:
    """Категория товара: custom > screens > accessories > devices"""
    return next((cat for rule, cat in CATEGORY_RULES if rule(item)), DEVICES)


def by_category(tab: str) -> Callable[[P], bool]:
    """Фильтр по вкладке каталога; "all" пропускает всё"""
    if tab == ALL:
        return lambda item: True
    return lambda item: classify(item) == tab


def filter_by_category(products: Iterable[P], tab: str) -> Tuple[P, ...]:
    return tuple(filter(by_category(tab), products))


def in_stock(item) -> bool:
    """stock > 0 (число или строка)"""
    raw = _field(item, "stock", 0)
    if isinstance(raw, bool):
        return False
    try:
        return int(float(raw)) > 0
    except (TypeError, ValueError):
        return False
