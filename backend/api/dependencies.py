from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Request
from core.errors import ApiError, ForbiddenError, UnauthenticatedError, UnexpectedError
from core.security import oauth2_scheme, verify_access_token, InvalidTokenError
from db.models.account import Account
from db.mongodb import get_mongo_db
from db.stores import AccountStore, CommentStore, MongoAccountStore, MongoCommentStore
from services.notifier import Notifier
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved by the authenticated gate for one request."""

    account: Account
    token: str

    @property
    def account_id(self) -> str:
        return self.account.id

    @property
    def is_admin(self) -> bool:
        return self.account.is_admin


def get_account_store() -> AccountStore:
    db = get_mongo_db()
    if db is None:
        raise UnexpectedError()
    return MongoAccountStore(db)

def get_comment_store() -> CommentStore:
    db = get_mongo_db()
    if db is None:
        raise UnexpectedError()
    return MongoCommentStore(db)

def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        raise UnexpectedError()
    return notifier

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    store: AccountStore = Depends(get_account_store),
) -> AuthContext:
    if not token:
        raise UnauthenticatedError("No token, authorization denied")
    try:
        account_id = verify_access_token(token)
    except InvalidTokenError:
        raise UnauthenticatedError("Token is not valid")
    try:
        account = await store.find_by_id(account_id)
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Account lookup failed during authentication: {e}")
        raise UnexpectedError()
    if account is None:
        raise UnauthenticatedError("User not found")
    return AuthContext(account=account, token=token)

async def admin_required(ctx: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not ctx.is_admin:
        raise ForbiddenError("Access denied. Admin only.")
    return ctx

def ensure_owner_or_admin(ctx: AuthContext, owner_id: str, allow_admin: bool = False,
                          message: str = "You can only modify your own resources") -> None:
    """Ownership check for resource handlers; admins pass only when allow_admin."""
    if str(owner_id) == ctx.account_id:
        return
    if allow_admin and ctx.is_admin:
        return
    raise ForbiddenError(message)
