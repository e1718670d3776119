from schemas.user_schema import RegisterRequest, ChangePasswordRequest, ProfileUpdate
from db.models.account import Account, ROLE_USER, STATUS_ACTIVE, STATUS_BANNED
from db.stores import AccountStore
from core.security import get_password_hash, verify_password, issue_token_pair, verify_refresh_token, InvalidTokenError, TokenPair
from core.config import settings
from core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    NotFoundError,
    UnauthenticatedError,
    UnexpectedError,
)
from services.notifier import Notifier
from fastapi import HTTPException
from starlette.concurrency import run_in_threadpool
from datetime import timedelta, datetime
from functools import lru_cache
from typing import Optional
import hmac
import logging
import secrets
from utils.pagination import normalize_page, page_meta
from utils.timing import timeit

logger = logging.getLogger(__name__)

RESET_CODE_DIGITS = 6


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively, so they are stored trimmed and lower-cased."""
    return (email or "").strip().lower()

def generate_reset_code() -> str:
    """Numeric password-reset code, zero-padded to RESET_CODE_DIGITS."""
    return f"{secrets.randbelow(10 ** RESET_CODE_DIGITS):0{RESET_CODE_DIGITS}d}"

@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return get_password_hash(secrets.token_urlsafe(16))

def _token_response(pair: TokenPair, account: Account) -> dict:
    return {
        "accessToken": pair.access_token,
        "refreshToken": pair.refresh_token,
        "data": account.public(),
    }

async def _rotate_refresh_token(account: Account, store: AccountStore) -> dict:
    """Issue a new pair and overwrite the stored refresh token with it."""
    pair = issue_token_pair(account.id)
    updated = await store.update(account.id, {"refresh_token": pair.refresh_token})
    if updated is None:
        raise UnexpectedError()
    return _token_response(pair, updated)

async def _notify(send, *args) -> None:
    # Delivery is best-effort; a failed email never fails the account operation
    try:
        sent = await run_in_threadpool(send, *args)
    except Exception as e:
        logger.error(f"Notifier raised while sending to {args[0]}: {e}")
        return
    if not sent:
        logger.warning(f"Notification to {args[0]} was not delivered")


@timeit("register")
async def register_user(data: RegisterRequest, store: AccountStore, notifier: Notifier) -> dict:
    """Create an account, sign it in and send the welcome email."""
    try:
        email = normalize_email(data.email)
        username = data.username.strip()
        if await store.find_one(email=email) or await store.find_one(username=username):
            raise ConflictError("User already exists")

        now = datetime.utcnow()
        account = await store.insert({
            "name": data.name.strip(),
            "surname": data.surname.strip(),
            "username": username,
            "email": email,
            "hashed_password": get_password_hash(data.password),
            "role": ROLE_USER,
            "status": STATUS_ACTIVE,
            "refresh_token": None,
            "reset_code": None,
            "reset_code_expires": None,
            "created_at": now,
            "updated_at": now,
        })
        result = await _rotate_refresh_token(account, store)
        logger.info(f"Registered account {account.id} ({account.username})")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error registering user: {e}")
        raise UnexpectedError()

    await _notify(notifier.send_welcome, account.email, account.name)
    return result

@timeit("login")
async def login_user(email: str, password: str, store: AccountStore) -> dict:
    """Verify credentials and rotate the account's refresh token."""
    try:
        account = await store.find_one(email=normalize_email(email))
        if account is None:
            # Same hashing cost as a real check so timing does not reveal unknown emails
            verify_password(password, _dummy_hash())
            raise InvalidCredentialsError()
        if not verify_password(password, account.hashed_password):
            raise InvalidCredentialsError()
        if account.status == STATUS_BANNED:
            raise ForbiddenError("Account is banned")
        return await _rotate_refresh_token(account, store)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error logging in user: {e}")
        raise UnexpectedError()

@timeit("refresh_token")
async def refresh_tokens(refresh_token: Optional[str], store: AccountStore) -> dict:
    """Exchange the currently stored refresh token for a new pair."""
    try:
        if not refresh_token:
            raise UnauthenticatedError("Refresh token is required")
        try:
            account_id = verify_refresh_token(refresh_token)
        except InvalidTokenError:
            raise UnauthenticatedError("Invalid refresh token")
        account = await store.find_by_id(account_id)
        # A rotated-out or revoked token no longer matches the stored value
        if account is None or not account.refresh_token or not hmac.compare_digest(account.refresh_token.encode(), refresh_token.encode()):
            raise UnauthenticatedError("Invalid refresh token")
        return await _rotate_refresh_token(account, store)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error refreshing tokens: {e}")
        raise UnexpectedError()

async def logout_user(account_id: str, store: AccountStore) -> dict:
    try:
        await store.update(account_id, {"refresh_token": None})
        return {"message": "Logged out successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error logging out user: {e}")
        raise UnexpectedError()

@timeit("request_password_reset")
async def request_password_reset(email: str, store: AccountStore, notifier: Notifier) -> dict:
    """Store a fresh reset code (replacing any earlier one) and email it."""
    try:
        account = await store.find_one(email=normalize_email(email))
        if account is None:
            raise NotFoundError("User not found")
        code = generate_reset_code()
        expires_at = datetime.utcnow() + timedelta(minutes=settings.RESET_CODE_EXPIRE_MINUTES)
        await store.update(account.id, {"reset_code": code, "reset_code_expires": expires_at})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error requesting password reset: {e}")
        raise UnexpectedError()

    await _notify(notifier.send_password_reset, account.email, code)
    return {"message": "Password reset code sent to your email"}

async def reset_password_with_code(email: str, code: str, new_password: str, store: AccountStore) -> dict:
    """Consume a reset code: set the new password and clear the code."""
    try:
        account = await store.find_one(email=normalize_email(email))
        if (
            account is None
            or not account.reset_code
            or account.reset_code_expires is None
            or not hmac.compare_digest(account.reset_code.encode(), (code or "").strip().encode())
            or datetime.utcnow() >= account.reset_code_expires
        ):
            raise InvalidOrExpiredError()
        await store.update(account.id, {
            "hashed_password": get_password_hash(new_password),
            "reset_code": None,
            "reset_code_expires": None,
            # end existing sessions along with the old password
            "refresh_token": None,
        })
        logger.info(f"Password reset for account {account.id}")
        return {"message": "Password reset successful"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error resetting password: {e}")
        raise UnexpectedError()

async def change_password(account: Account, password_request: ChangePasswordRequest, store: AccountStore) -> dict:
    """Change user password"""
    try:
        if not verify_password(password_request.current_password, account.hashed_password):
            raise InvalidCredentialsError("Current password is incorrect")
        await store.update(account.id, {"hashed_password": get_password_hash(password_request.new_password)})
        return {"message": "Password changed successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error changing password: {e}")
        raise UnexpectedError()

async def update_user_profile(account: Account, user_update: ProfileUpdate, store: AccountStore) -> dict:
    """Update name, surname, username or email of the caller's own account."""
    try:
        changes = {}
        for field in ("name", "surname"):
            value = getattr(user_update, field)
            if value and value.strip():
                changes[field] = value.strip()

        username = (user_update.username or "").strip()
        if username and username != account.username:
            other = await store.find_one(username=username)
            if other is not None and other.id != account.id:
                raise ConflictError("Username already exists")
            changes["username"] = username

        email = normalize_email(user_update.email) if user_update.email else ""
        if email and email != account.email:
            other = await store.find_one(email=email)
            if other is not None and other.id != account.id:
                raise ConflictError("Email already exists")
            changes["email"] = email

        if not changes:
            return {"data": account.public()}
        updated = await store.update(account.id, changes)
        if updated is None:
            raise NotFoundError("User not found")
        return {"data": updated.public()}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating user profile: {e}")
        raise UnexpectedError()

@timeit("list_users")
async def list_users(store: AccountStore, page=1, limit=10, keyword: Optional[str] = None) -> dict:
    try:
        p = normalize_page(page, limit)
        accounts, total = await store.search(keyword or "", p.skip, p.limit)
        pagination = page_meta(p, total)
        pagination["totalUsers"] = total
        return {"data": [a.public() for a in accounts], "pagination": pagination}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing users: {e}")
        raise UnexpectedError()

async def update_user_status(account_id: str, status: str, store: AccountStore) -> dict:
    """Admin status change; banning also revokes the stored refresh token."""
    try:
        changes = {"status": status}
        if status == STATUS_BANNED:
            changes["refresh_token"] = None
        updated = await store.update(account_id, changes)
        if updated is None:
            raise NotFoundError("User not found")
        logger.info(f"Account {account_id} status set to {status}")
        return {"data": updated.public()}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating user status: {e}")
        raise UnexpectedError()
