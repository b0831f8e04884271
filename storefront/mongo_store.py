import asyncio
from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .errors import FetchError, WriteError
from .store import Document, Path


def collection_name(path: Path) -> str:
    """("users", "u1", "stores", "s1", "inventory") → "users.u1.stores.s1.inventory" """
    return ".".join(path)


def to_query_id(doc_id: str):
    return ObjectId(doc_id) if ObjectId.is_valid(doc_id) else doc_id


def to_document(doc: dict) -> Document:
    data = dict(doc)
    return str(data.pop("_id")), data


class MongoDocumentStore:
    """
    Документное хранилище поверх pymongo.
    Вложенные коллекции хранятся как отдельные коллекции с именем через точку.
    """

    def __init__(self, db: Database):
        self.db = db

    async def get_documents(self, path: Path) -> List[Document]:
        def _read():
            return [to_document(d) for d in self.db[collection_name(path)].find({})]

        try:
            return await asyncio.to_thread(_read)
        except PyMongoError as exc:
            raise FetchError(f"Failed to read {collection_name(path)}: {exc}") from exc

    async def get_document(self, path: Path, doc_id: str) -> Optional[dict]:
        def _read():
            return self.db[collection_name(path)].find_one({"_id": to_query_id(doc_id)})

        try:
            doc = await asyncio.to_thread(_read)
        except PyMongoError as exc:
            raise FetchError(f"Failed to read {collection_name(path)}/{doc_id}: {exc}") from exc
        return to_document(doc)[1] if doc is not None else None

    async def add_document(self, path: Path, data: dict) -> str:
        def _write():
            return self.db[collection_name(path)].insert_one(dict(data)).inserted_id

        try:
            inserted_id = await asyncio.to_thread(_write)
        except PyMongoError as exc:
            raise WriteError(f"Failed to write to {collection_name(path)}: {exc}") from exc
        return str(inserted_id)
