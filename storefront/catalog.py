import asyncio
import logging
from dataclasses import replace
from functools import reduce
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .categories import by_category, in_stock
from .config import parse_product_id
from .domain import ALL, Product, ProductDetail, StoreConfig
from .errors import ConfigurationError, FetchError, NotFoundError
from .normalize import normalize, to_stock
from .store import OWNERS_PATH, DocumentStore, inventory_path

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "POS store not configured. Set POS_OWNER_UID and POS_STORE_ID "
    "(or POS_STORE_IDS, or POS_STORES) in the environment"
)

RawRecord = Tuple[StoreConfig, str, dict]


# ============ Загрузка инвентаря (fan-out / fan-in) ============


async def fetch_store_inventory(
    store: DocumentStore, config: StoreConfig, in_stock_only: bool = False
) -> List[RawRecord]:
    """Все документы инвентаря одного магазина, помеченные магазином-источником"""
    try:
        docs = await store.get_documents(inventory_path(config))
    except FetchError as exc:
        raise FetchError(
            f"Failed to load inventory for store {config.owner_id}:{config.store_id}: {exc}"
        ) from exc

    records = [(config, doc_id, data) for doc_id, data in docs]
    if in_stock_only:
        return [r for r in records if to_stock(r[2].get("stock")) >= 1]
    return records


def iter_normalized(
    results: Iterable[List[RawRecord]], composite: bool
) -> Iterable[Product]:
    for records in results:
        for origin, doc_id, data in records:
            yield normalize(origin, doc_id, data, composite=composite)


# ============ Склейка одинаковых товаров разных магазинов ============


def dedupe_key(product: Product) -> Tuple[str, float, str, str]:
    return (
        product.name.strip().lower(),
        product.price,
        product.color or "",
        product.storage or "",
    )


def merge_into(existing: Product, incoming: Product) -> Product:
    """Остатки складываются, магазины объединяются без повторов, картинки: первые непустые"""
    locations = existing.store_locations + tuple(
        loc for loc in incoming.store_locations if loc not in existing.store_locations
    )
    return replace(
        existing,
        stock=existing.stock + incoming.stock,
        store_locations=locations,
        image_urls=existing.image_urls or incoming.image_urls,
    )


def dedupe_products(products: Iterable[Product]) -> Tuple[Product, ...]:
    """Порядок: по первому появлению ключа; id: от первого магазина"""

    def accumulate(acc: Dict[tuple, Product], product: Product) -> Dict[tuple, Product]:
        key = dedupe_key(product)
        merged = merge_into(acc[key], product) if key in acc else product
        return {**acc, key: merged}

    return tuple(reduce(accumulate, products, {}).values())


async def aggregate(
    store_configs: Sequence[StoreConfig],
    store: DocumentStore,
    in_stock_at_source: bool = False,
) -> Tuple[Product, ...]:
    """
    Каталог витрины из инвентаря всех магазинов.
    Ошибка любого магазина: ошибка всего каталога (FetchError).
    """
    if not store_configs:
        raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

    tasks = [fetch_store_inventory(store, c, in_stock_at_source) for c in store_configs]
    results = await asyncio.gather(*tasks)

    multi_store = len(store_configs) > 1
    normalized = iter_normalized(results, composite=multi_store)
    products = dedupe_products(normalized) if multi_store else tuple(normalized)

    with_images = sum(1 for p in products if p.image_urls)
    logger.info(
        f"Loaded {len(products)} items from {len(store_configs)} store(s), "
        f"{with_images} with image(s)"
    )
    return products


# ============ Поиск и фильтры ============


def by_search(query: str):
    """Подстрока в названии или описании, без учёта регистра"""
    q = (query or "").strip().lower()
    if not q:
        return lambda p: True
    return lambda p: q in p.name.lower() or q in p.description.lower()


def search(products: Iterable[Product], query: str) -> Tuple[Product, ...]:
    return tuple(filter(by_search(query), products))


class CatalogService:
    """Фасад для работы с загруженным каталогом"""

    def __init__(self, products: Tuple[Product, ...]):
        self.products = products

    def browse(
        self, tab: str = ALL, query: str = "", in_stock_only: bool = True
    ) -> Tuple[Product, ...]:
        """Витрина: наличие → вкладка категории → поиск"""
        filters = [by_category(tab), by_search(query)]
        if in_stock_only:
            filters.insert(0, in_stock)
        return tuple(p for p in self.products if all(f(p) for f in filters))

    def find(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)


# ============ Карточка товара ============


async def load_store_names(
    store: DocumentStore, locations: Sequence[StoreConfig]
) -> Tuple[str, ...]:
    """Названия магазинов владельцев; при ошибке чтения: пустой кортеж"""
    owner_ids = tuple(dict.fromkeys(loc.owner_id for loc in locations))
    try:
        docs = await asyncio.gather(
            *(store.get_document(OWNERS_PATH, uid) for uid in owner_ids)
        )
    except FetchError as exc:
        logger.warning(f"Could not load store names for {owner_ids}: {exc}")
        return ()
    names = (str((d or {}).get("storeName") or "") for d in docs)
    return tuple(dict.fromkeys(n for n in names if n))


async def load_product_detail(
    store: DocumentStore,
    store_configs: Sequence[StoreConfig],
    encoded_id: str,
    store_locations: Optional[Sequence[StoreConfig]] = None,
) -> ProductDetail:
    """
    Карточка товара по id из каталога.
    store_locations передаются из списка товаров для склеенных позиций,
    чтобы показать все магазины, где товар есть.
    """
    parsed = parse_product_id(encoded_id)
    if parsed.is_some():
        owner_id, store_id, doc_id = parsed.value
        origin = StoreConfig(owner_id=owner_id, store_id=store_id)
    elif store_configs:
        origin, doc_id = store_configs[0], encoded_id
    else:
        raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

    data = await store.get_document(inventory_path(origin), doc_id)
    if data is None:
        raise NotFoundError("Product not found")

    product = normalize(origin, doc_id, data, composite=parsed.is_some())
    if store_locations:
        product = replace(product, store_locations=tuple(store_locations))
    names = await load_store_names(store, product.store_locations)
    return ProductDetail(product=product, store_names=names)
