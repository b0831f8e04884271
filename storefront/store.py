import json
import uuid
from copy import deepcopy
from typing import Dict, List, Optional, Protocol, Tuple

from .domain import StoreConfig

Path = Tuple[str, ...]
Document = Tuple[str, dict]  # (id документа, данные)


# ============ Пути коллекций ============


def inventory_path(store: StoreConfig) -> Path:
    return ("users", store.owner_id, "stores", store.store_id, "inventory")


def orders_path(owner_id: str, store_id: str) -> Path:
    return ("users", owner_id, "stores", store_id, "websiteOrders")


def order_refs_path(customer_id: str) -> Path:
    return ("users", customer_id, "orderRefs")


OWNERS_PATH: Path = ("users",)


class DocumentStore(Protocol):
    """
    Внешняя документная БД.
    Ошибки чтения: FetchError, ошибки записи: WriteError.
    """

    async def get_documents(self, path: Path) -> List[Document]: ...

    async def get_document(self, path: Path, doc_id: str) -> Optional[dict]: ...

    async def add_document(self, path: Path, data: dict) -> str: ...


class InMemoryDocumentStore:
    """Хранилище в памяти: тесты и демо-витрина на seed.json"""

    def __init__(self, collections: Optional[Dict[Path, Dict[str, dict]]] = None):
        self.collections: Dict[Path, Dict[str, dict]] = {
            tuple(path): dict(docs) for path, docs in (collections or {}).items()
        }

    def put(self, path: Path, doc_id: str, data: dict) -> None:
        self.collections.setdefault(tuple(path), {})[doc_id] = deepcopy(data)

    async def get_documents(self, path: Path) -> List[Document]:
        docs = self.collections.get(tuple(path), {})
        return [(doc_id, deepcopy(data)) for doc_id, data in docs.items()]

    async def get_document(self, path: Path, doc_id: str) -> Optional[dict]:
        data = self.collections.get(tuple(path), {}).get(doc_id)
        return deepcopy(data) if data is not None else None

    async def add_document(self, path: Path, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.put(path, doc_id, data)
        return doc_id


def load_seed(path: str) -> Tuple[InMemoryDocumentStore, Tuple[StoreConfig, ...]]:
    """
    Загружает seed.json: владельцы (storeName) и инвентарь их магазинов.
    Возвращает хранилище и список магазинов в порядке файла.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    store = InMemoryDocumentStore()
    configs = []
    for owner in data.get("owners", []):
        owner_id = str(owner["id"])
        store.put(OWNERS_PATH, owner_id, {"storeName": owner.get("storeName", "")})
        for shop in owner.get("stores", []):
            config = StoreConfig(owner_id=owner_id, store_id=str(shop["id"]))
            configs.append(config)
            for item in shop.get("inventory", []):
                item = dict(item)
                store.put(inventory_path(config), str(item.pop("id")), item)
    return store, tuple(configs)
