import json
import logging
import os
from dataclasses import replace
from functools import reduce
from typing import Optional, Protocol, Tuple

from .domain import CartItem, Product

logger = logging.getLogger(__name__)

CartItems = Tuple[CartItem, ...]


# ============ Операции над корзиной (чистые функции) ============


def add_item(items: CartItems, item: CartItem, quantity: Optional[int] = None) -> CartItems:
    """
    Добавляет товар: количество ограничено item.max_stock.
    Повторное добавление суммирует количество и ограничивает его новым max_stock.
    """
    qty = min(item.quantity if quantity is None else quantity, item.max_stock)
    if qty < 1:
        return items

    existing = next((i for i in items if i.product_id == item.product_id), None)
    if existing is None:
        return items + (replace(item, quantity=qty),)

    merged = min(existing.quantity + qty, item.max_stock)
    if merged < 1:
        return remove_item(items, item.product_id)
    return tuple(
        replace(i, quantity=merged, max_stock=item.max_stock)
        if i.product_id == item.product_id
        else i
        for i in items
    )


def remove_item(items: CartItems, product_id: str) -> CartItems:
    return tuple(i for i in items if i.product_id != product_id)


def set_item_quantity(items: CartItems, product_id: str, quantity: int) -> CartItems:
    """Количество зажимается в [0, max_stock]; 0 удаляет позицию"""
    updated = (
        replace(i, quantity=max(0, min(quantity, i.max_stock)))
        if i.product_id == product_id
        else i
        for i in items
    )
    return tuple(i for i in updated if i.quantity > 0)


def total_items(items: CartItems) -> int:
    return reduce(lambda acc, i: acc + i.quantity, items, 0)


def subtotal(items: CartItems) -> float:
    return reduce(lambda acc, i: acc + i.price * i.quantity, items, 0)


def cart_item_from_product(product: Product, quantity: int = 1) -> CartItem:
    return CartItem(
        product_id=product.id,
        name=product.name,
        price=product.price,
        max_stock=product.stock,
        quantity=quantity,
        image_url=product.image_url,
    )


# ============ Сериализация ============


def item_to_dict(item: CartItem) -> dict:
    d = {
        "productId": item.product_id,
        "name": item.name,
        "price": item.price,
        "quantity": item.quantity,
        "maxStock": item.max_stock,
    }
    if item.image_url:
        d["imageUrl"] = item.image_url
    return d


def item_from_dict(d: dict) -> CartItem:
    quantity, max_stock = int(d["quantity"]), int(d["maxStock"])
    if not 1 <= quantity <= max_stock:
        raise ValueError(f"quantity {quantity} out of range for {d['productId']}")
    return CartItem(
        product_id=str(d["productId"]),
        name=str(d["name"]),
        price=float(d["price"]),
        max_stock=max_stock,
        quantity=quantity,
        image_url=d.get("imageUrl") or None,
    )


def parse_cart(raw: Optional[str]) -> CartItems:
    """JSON → позиции корзины; пустое или битое содержимое → пустая корзина"""
    if not raw:
        return ()
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("cart payload is not a list")
        return tuple(item_from_dict(d) for d in data)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.warning(f"Discarding corrupt cart storage: {exc}")
        return ()


def dump_cart(items: CartItems) -> str:
    return json.dumps([item_to_dict(i) for i in items], ensure_ascii=False)


# ============ Долговременное хранение ============


class CartStorage(Protocol):
    def load(self) -> CartItems: ...

    def save(self, items: CartItems) -> None: ...


class MemoryCartStorage:
    """Хранение в строке (аналог localStorage)"""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw

    def load(self) -> CartItems:
        return parse_cart(self.raw)

    def save(self, items: CartItems) -> None:
        self.raw = dump_cart(items)


class JsonCartStorage:
    def __init__(self, path: str):
        self.path = path

    def load(self) -> CartItems:
        if not os.path.exists(self.path):
            return ()
        with open(self.path, "r", encoding="utf-8") as f:
            return parse_cart(f.read())

    def save(self, items: CartItems) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(dump_cart(items))


# ============ Корзина сессии ============


class CartStore:
    """
    Корзина сессии. Все изменения проходят через _commit:
    сначала новое состояние в памяти, затем запись в storage.
    """

    def __init__(self, storage: CartStorage):
        self.storage = storage
        self._items: CartItems = storage.load()

    @property
    def items(self) -> CartItems:
        return self._items

    @property
    def total_items(self) -> int:
        return total_items(self._items)

    @property
    def subtotal(self) -> float:
        return subtotal(self._items)

    def get(self, product_id: str) -> Optional[CartItem]:
        return next((i for i in self._items if i.product_id == product_id), None)

    def add(self, item: CartItem, quantity: Optional[int] = None) -> CartItems:
        return self._commit(add_item(self._items, item, quantity))

    def remove(self, product_id: str) -> CartItems:
        return self._commit(remove_item(self._items, product_id))

    def set_quantity(self, product_id: str, quantity: int) -> CartItems:
        return self._commit(set_item_quantity(self._items, product_id, quantity))

    def clear(self) -> CartItems:
        return self._commit(())

    def _commit(self, items: CartItems) -> CartItems:
        self._items = items
        self.storage.save(items)
        return items
