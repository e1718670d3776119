from datetime import datetime, timedelta
from typing import NamedTuple, Optional
import uuid
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import OAuth2PasswordBearer
from core.config import settings
import logging

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer scheme for the OpenAPI 'Authorize' button. auto_error is off so the
# authenticated gate decides how a missing header is reported.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


class InvalidTokenError(Exception):
    """Raised when a token is malformed, expired, badly signed or of the wrong type."""


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Password hash could not be verified: {e}")
        return False

def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)

def _encode(account_id: str, token_type: str, secret: str, expires_delta: timedelta) -> str:
    now = datetime.utcnow()
    to_encode = {
        "sub": str(account_id),
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        # Unique per issuance so rotation always yields a different token
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)

def create_access_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(account_id, ACCESS_TOKEN_TYPE, settings.JWT_SECRET, expires_delta)

def create_refresh_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT refresh token"""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(account_id, REFRESH_TOKEN_TYPE, settings.REFRESH_TOKEN_SECRET, expires_delta)

def issue_token_pair(account_id: str) -> TokenPair:
    """Mint a fresh access/refresh pair for the account."""
    return TokenPair(
        access_token=create_access_token(account_id),
        refresh_token=create_refresh_token(account_id),
    )

def _decode(token: str, secret: str, token_type: str) -> str:
    if not token:
        raise InvalidTokenError("Token is missing")
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.debug(f"JWT decode failed: {e}")
        raise InvalidTokenError(str(e)) from e
    if payload.get("type") != token_type:
        raise InvalidTokenError(f"Expected a {token_type} token")
    account_id = payload.get("sub")
    if not account_id:
        raise InvalidTokenError("Token has no subject")
    return account_id

def verify_access_token(token: str) -> str:
    """Return the account id carried by a valid access token."""
    return _decode(token, settings.JWT_SECRET, ACCESS_TOKEN_TYPE)

def verify_refresh_token(token: str) -> str:
    """Return the account id carried by a valid refresh token."""
    return _decode(token, settings.REFRESH_TOKEN_SECRET, REFRESH_TOKEN_TYPE)

def peek_account_id(token: str) -> Optional[str]:
    """Best-effort access-token decode for log context; never raises."""
    try:
        return verify_access_token(token)
    except InvalidTokenError:
        return None
