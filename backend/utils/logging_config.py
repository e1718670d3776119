import logging
import logging.handlers
import contextvars
from pathlib import Path
from typing import Dict, List, Optional

from core.config import settings
from core.security import peek_account_id
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

LOG_FORMAT = "%(levelname)s - %(asctime)s - %(user_id)s - %(api)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

user_id_var = contextvars.ContextVar("user_id", default="-")
api_var = contextvars.ContextVar("api", default="-")

# logger name -> handler keys it writes to
LOGGER_ROUTES: Dict[str, List[str]] = {
    "uvicorn": ["app", "error", "console"],
    "uvicorn.error": ["app", "error", "console"],
    "fastapi": ["app", "error", "console"],
    "uvicorn.access": ["access", "console"],
}


def map_log_level(level_name: str) -> int:
    level = logging.getLevelName((level_name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


class ContextFilter(logging.Filter):
    """Adds the request's account id and route to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = user_id_var.get()
        record.api = api_var.get()
        return True


def _daily_file(log_dir: Path, filename: str, level: int, formatter: logging.Formatter) -> logging.Handler:
    # Rotates at midnight UTC; LOG_TTL_DAYS old files are kept
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir / filename),
        when="midnight",
        backupCount=max(settings.LOG_TTL_DAYS, 0),
        encoding="utf-8",
        utc=True,
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    return handler


def _build_handlers(level: int, log_dir: Path) -> Dict[str, logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    console.addFilter(ContextFilter())

    return {
        "app": _daily_file(log_dir, "app.log", level, formatter),
        "access": _daily_file(log_dir, "access.log", level, formatter),
        "error": _daily_file(log_dir, "error.log", logging.WARNING, formatter),
        "console": console,
    }


def _attach(target: logging.Logger, handlers: List[logging.Handler], level: int) -> None:
    for h in list(target.handlers):
        target.removeHandler(h)
    for h in handlers:
        target.addHandler(h)
    target.setLevel(level)


def configure_logging(app_logger_name: Optional[str] = None) -> logging.Logger:
    """Configure root, application and Uvicorn loggers.

    Files go to LOG_DIR (app.log, access.log, error.log) with daily rotation;
    everything is mirrored to the console.
    """
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    level = map_log_level(settings.LOG_LEVEL)
    handlers = _build_handlers(level, log_dir)
    default = [handlers["app"], handlers["error"], handlers["console"]]

    _attach(logging.getLogger(), default, level)

    app_logger = logging.getLogger(app_logger_name or "storefront")
    app_logger.propagate = False
    _attach(app_logger, default, level)

    for name, keys in LOGGER_ROUTES.items():
        lgr = logging.getLogger(name)
        lgr.propagate = False
        _attach(lgr, [handlers[k] for k in keys], level)

    return app_logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every log line of a request with the caller's account id and route."""

    async def dispatch(self, request: Request, call_next):
        user_id = "-"
        auth_header = request.headers.get("authorization") or ""
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() == "bearer" and token:
            user_id = peek_account_id(token.strip()) or "-"

        context_token_user = user_id_var.set(user_id)
        context_token_api = api_var.set(f"{request.method} {request.url.path}")
        try:
            return await call_next(request)
        finally:
            user_id_var.reset(context_token_user)
            api_var.reset(context_token_api)
