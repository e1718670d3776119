"""
Pytest configuration and fixtures for the backend tests.

The HTTP tests run the real FastAPI app against in-memory stores and a
recording notifier, injected through ``app.dependency_overrides``.
"""
import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ["MONGO_URI"] = ""
os.environ.setdefault("LOG_DIR", os.path.join(os.path.dirname(__file__), ".logs"))

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytest
from faker import Faker
from fastapi.testclient import TestClient

from main import app
from api.dependencies import get_account_store, get_comment_store, get_notifier
from core.errors import ConflictError
from db.models.account import Account, ROLE_ADMIN
from db.models.comment import Comment
from db.stores import AccountStore, CommentStore, SEARCH_FIELDS

fake = Faker()

DEFAULT_PASSWORD = "Secret123"


class InMemoryAccountStore(AccountStore):
    """Dict-backed AccountStore enforcing the same uniqueness rules as the Mongo indexes."""

    def __init__(self):
        self.accounts: Dict[str, Account] = {}

    def _check_unique(self, fields: Dict[str, Any], exclude_id: Optional[str] = None) -> None:
        for other in self.accounts.values():
            if other.id == exclude_id:
                continue
            if "username" in fields and other.username == fields["username"]:
                raise ConflictError("Username already exists")
            if "email" in fields and other.email == fields["email"]:
                raise ConflictError("Email already exists")

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        account = self.accounts.get(account_id)
        return account.model_copy() if account else None

    async def find_one(self, **fields: Any) -> Optional[Account]:
        for account in self.accounts.values():
            if all(getattr(account, k, None) == v for k, v in fields.items()):
                return account.model_copy()
        return None

    async def insert(self, record: Dict[str, Any]) -> Account:
        self._check_unique(record)
        account = Account(id=uuid.uuid4().hex, **record)
        self.accounts[account.id] = account
        return account.model_copy()

    async def update(self, account_id: str, fields: Dict[str, Any]) -> Optional[Account]:
        account = self.accounts.get(account_id)
        if account is None:
            return None
        self._check_unique(fields, exclude_id=account_id)
        changes = dict(fields, updated_at=datetime.utcnow())
        self.accounts[account_id] = account.model_copy(update=changes)
        return self.accounts[account_id].model_copy()

    async def search(self, keyword: str, skip: int, limit: int) -> Tuple[List[Account], int]:
        needle = (keyword or "").strip().lower()
        matches = [
            a for a in self.accounts.values()
            if not needle or any(needle in getattr(a, f).lower() for f in SEARCH_FIELDS)
        ]
        matches.sort(key=lambda a: a.created_at, reverse=True)
        return [a.model_copy() for a in matches[skip:skip + limit]], len(matches)

    def set_fields(self, account_id: str, **fields: Any) -> Account:
        """Test helper: write fields directly, bypassing the service layer."""
        self.accounts[account_id] = self.accounts[account_id].model_copy(update=fields)
        return self.accounts[account_id]


class InMemoryCommentStore(CommentStore):
    def __init__(self):
        self.comments: Dict[str, Comment] = {}

    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        comment = self.comments.get(comment_id)
        return comment.model_copy() if comment else None

    async def insert(self, record: Dict[str, Any]) -> Comment:
        comment = Comment(id=uuid.uuid4().hex, **record)
        self.comments[comment.id] = comment
        return comment.model_copy()

    async def update(self, comment_id: str, fields: Dict[str, Any]) -> Optional[Comment]:
        comment = self.comments.get(comment_id)
        if comment is None:
            return None
        self.comments[comment_id] = comment.model_copy(update=dict(fields, updated_at=datetime.utcnow()))
        return self.comments[comment_id].model_copy()

    async def delete(self, comment_id: str) -> bool:
        return self.comments.pop(comment_id, None) is not None

    async def list_for_product(self, product_id: str, skip: int, limit: int) -> Tuple[List[Comment], int]:
        matches = [c for c in self.comments.values() if c.product_id == product_id]
        matches.sort(key=lambda c: c.created_at, reverse=True)
        return [c.model_copy() for c in matches[skip:skip + limit]], len(matches)


class RecordingNotifier:
    """Stands in for services.notifier.Notifier and remembers what it was asked to send."""

    def __init__(self):
        self.welcomes: List[Tuple[str, str]] = []
        self.resets: List[Tuple[str, str]] = []
        self.deliver = True
        self.raise_on_send: Optional[Exception] = None

    def _result(self) -> bool:
        if self.raise_on_send is not None:
            raise self.raise_on_send
        return self.deliver

    def send_welcome(self, to_email: str, name: str) -> bool:
        self.welcomes.append((to_email, name))
        return self._result()

    def send_password_reset(self, to_email: str, reset_code: str) -> bool:
        self.resets.append((to_email, reset_code))
        return self._result()


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def comment_store() -> InMemoryCommentStore:
    return InMemoryCommentStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(account_store, comment_store, notifier):
    """Test client wired to the in-memory stores."""
    app.dependency_overrides[get_account_store] = lambda: account_store
    app.dependency_overrides[get_comment_store] = lambda: comment_store
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def register(client: TestClient, **overrides) -> dict:
    """Register a fresh account and return the response body."""
    payload = {
        "name": fake.first_name(),
        "surname": fake.last_name(),
        "username": f"user{uuid.uuid4().hex[:10]}",
        "email": f"{uuid.uuid4().hex[:10]}@example.com",
        "password": DEFAULT_PASSWORD,
    }
    payload.update(overrides)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(client):
    return register(client)


@pytest.fixture
def admin(client, account_store):
    body = register(client)
    account_store.set_fields(body["data"]["id"], role=ROLE_ADMIN)
    return body
