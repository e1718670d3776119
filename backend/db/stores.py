"""Persistence interfaces for accounts and comments, with Mongo implementations.

Handlers only talk to ``AccountStore`` / ``CommentStore``; the Mongo classes
translate unique-index violations into ``ConflictError``.
"""
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from core.errors import ConflictError
from db.models.account import Account
from db.models.comment import Comment
from db.mongodb import COMMENTS, USERS

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("username", "email", "name", "surname")


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _conflict_message(exc: DuplicateKeyError) -> str:
    details = getattr(exc, "details", None) or {}
    key = details.get("keyPattern") or details.get("keyValue") or {}
    if "username" in key:
        return "Username already exists"
    if "email" in key:
        return "Email already exists"
    return ConflictError.message


class AccountStore(ABC):
    @abstractmethod
    async def find_by_id(self, account_id: str) -> Optional[Account]:
        ...

    @abstractmethod
    async def find_one(self, **fields: Any) -> Optional[Account]:
        """Return the first account whose fields equal all of ``fields``."""

    @abstractmethod
    async def insert(self, record: Dict[str, Any]) -> Account:
        ...

    @abstractmethod
    async def update(self, account_id: str, fields: Dict[str, Any]) -> Optional[Account]:
        """Apply a partial update; returns the updated account or None if missing."""

    @abstractmethod
    async def search(self, keyword: str, skip: int, limit: int) -> Tuple[List[Account], int]:
        """Case-insensitive substring search, newest first, with total match count."""


class CommentStore(ABC):
    @abstractmethod
    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        ...

    @abstractmethod
    async def insert(self, record: Dict[str, Any]) -> Comment:
        ...

    @abstractmethod
    async def update(self, comment_id: str, fields: Dict[str, Any]) -> Optional[Comment]:
        ...

    @abstractmethod
    async def delete(self, comment_id: str) -> bool:
        ...

    @abstractmethod
    async def list_for_product(self, product_id: str, skip: int, limit: int) -> Tuple[List[Comment], int]:
        ...


class MongoAccountStore(AccountStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[USERS]

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        oid = _object_id(account_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return Account.from_document(doc) if doc else None

    async def find_one(self, **fields: Any) -> Optional[Account]:
        if "id" in fields:
            oid = _object_id(fields.pop("id"))
            if oid is None:
                return None
            fields["_id"] = oid
        doc = await self.collection.find_one(fields)
        return Account.from_document(doc) if doc else None

    async def insert(self, record: Dict[str, Any]) -> Account:
        doc = dict(record)
        doc.pop("id", None)
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise ConflictError() from e
        doc["_id"] = result.inserted_id
        return Account.from_document(doc)

    async def update(self, account_id: str, fields: Dict[str, Any]) -> Optional[Account]:
        oid = _object_id(account_id)
        if oid is None:
            return None
        changes = dict(fields)
        changes["updated_at"] = datetime.utcnow()
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise ConflictError(_conflict_message(e)) from e
        return Account.from_document(doc) if doc else None

    async def search(self, keyword: str, skip: int, limit: int) -> Tuple[List[Account], int]:
        filter_q: Dict[str, Any] = {}
        if keyword and keyword.strip():
            rx = {"$regex": re.escape(keyword.strip()), "$options": "i"}
            filter_q = {"$or": [{field: rx} for field in SEARCH_FIELDS]}
        total = await self.collection.count_documents(filter_q)
        cursor = self.collection.find(filter_q).sort("created_at", -1).skip(skip).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [Account.from_document(d) for d in docs], total


class MongoCommentStore(CommentStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[COMMENTS]

    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        oid = _object_id(comment_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return Comment.from_document(doc) if doc else None

    async def insert(self, record: Dict[str, Any]) -> Comment:
        doc = dict(record)
        doc.pop("id", None)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return Comment.from_document(doc)

    async def update(self, comment_id: str, fields: Dict[str, Any]) -> Optional[Comment]:
        oid = _object_id(comment_id)
        if oid is None:
            return None
        changes = dict(fields)
        changes["updated_at"] = datetime.utcnow()
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return Comment.from_document(doc) if doc else None

    async def delete(self, comment_id: str) -> bool:
        oid = _object_id(comment_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def list_for_product(self, product_id: str, skip: int, limit: int) -> Tuple[List[Comment], int]:
        filter_q = {"product_id": product_id}
        total = await self.collection.count_documents(filter_q)
        cursor = self.collection.find(filter_q).sort("created_at", -1).skip(skip).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [Comment.from_document(d) for d in docs], total
