import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .domain import StoreConfig
from .ftypes import Maybe


# Составной id товара: ownerId|storeId|docId
COMPOSITE_ID_SEP = "|"

DEFAULT_CURRENCY = "GHS"
DEFAULT_CART_DIR = "data/carts"

_TRUTHY = ("1", "true", "yes", "on")


def _split_list(raw: str) -> Tuple[str, ...]:
    return tuple(s.strip() for s in raw.split(",") if s.strip())


def _valid_part(value: str) -> bool:
    return bool(value) and COMPOSITE_ID_SEP not in value


def _parse_pair(pair: str) -> Maybe[StoreConfig]:
    owner_id, sep, store_id = pair.partition(":")
    owner_id, store_id = owner_id.strip(), store_id.strip()
    if not sep or not _valid_part(owner_id) or not _valid_part(store_id):
        return Maybe.nothing()
    return Maybe.some(StoreConfig(owner_id=owner_id, store_id=store_id))


def load_store_configs(env: Optional[Mapping[str, str]] = None) -> Tuple[StoreConfig, ...]:
    """
    Список магазинов для каталога, первый подходящий вариант выигрывает:
    1) POS_STORES=owner1:store1,owner2:store2
    2) POS_OWNER_UID + POS_STORE_IDS=store1,store2
    3) POS_OWNER_UID + POS_STORE_ID
    Пустой кортеж, если ничего не задано.
    """
    env = os.environ if env is None else env
    stores_raw = env.get("POS_STORES", "").strip()
    owner_id = env.get("POS_OWNER_UID", "").strip()
    store_ids_raw = env.get("POS_STORE_IDS", "").strip()
    store_id = env.get("POS_STORE_ID", "").strip()

    if stores_raw:
        parsed = (_parse_pair(p) for p in _split_list(stores_raw))
        return tuple(m.value for m in parsed if m.is_some())
    if not _valid_part(owner_id):
        return ()
    if store_ids_raw:
        return tuple(
            StoreConfig(owner_id=owner_id, store_id=s)
            for s in _split_list(store_ids_raw)
            if _valid_part(s)
        )
    if _valid_part(store_id):
        return (StoreConfig(owner_id=owner_id, store_id=store_id),)
    return ()


# ============ Составные id ============


def to_composite_id(owner_id: str, store_id: str, doc_id: str) -> str:
    return COMPOSITE_ID_SEP.join((owner_id, store_id, doc_id))


def parse_product_id(encoded_id: str) -> Maybe[Tuple[str, str, str]]:
    """ownerId|storeId|docId → Some((owner, store, doc)), иначе Nothing"""
    parts = encoded_id.split(COMPOSITE_ID_SEP)
    if len(parts) == 3:
        return Maybe.some((parts[0], parts[1], parts[2]))
    return Maybe.nothing()


# ============ Настройки витрины ============


@dataclass(frozen=True)
class StorefrontSettings:
    stores: Tuple[StoreConfig, ...]
    in_stock_at_source: bool = False
    currency: str = DEFAULT_CURRENCY
    cart_dir: str = DEFAULT_CART_DIR
    database_url: Optional[str] = None
    database_name: Optional[str] = None


def load_settings(env: Optional[Mapping[str, str]] = None) -> StorefrontSettings:
    env = os.environ if env is None else env
    return StorefrontSettings(
        stores=load_store_configs(env),
        in_stock_at_source=env.get("POS_IN_STOCK_AT_SOURCE", "").strip().lower()
        in _TRUTHY,
        currency=env.get("STOREFRONT_CURRENCY", "").strip() or DEFAULT_CURRENCY,
        cart_dir=env.get("STOREFRONT_CART_DIR", "").strip() or DEFAULT_CART_DIR,
        database_url=env.get("DATABASE_URL") or None,
        database_name=env.get("DATABASE_NAME") or None,
    )


def cart_file(cart_dir: str, owner_key: str) -> str:
    """Отдельный файл корзины на покупателя (или сессию)"""
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", owner_key.strip()) or "anonymous"
    return os.path.join(cart_dir, f"cart-{safe}.json")
