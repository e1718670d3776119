from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from api.v1 import auth, users, comments
from core.config import settings
from core.errors import ApiError, BadRequestError, UnexpectedError
from db.mongodb import get_mongo_db, init_mongo_indexes, close_mongo_client
from services.notifier import Notifier
from utils.logging_config import configure_logging, RequestContextMiddleware
from utils.responses import error_json

# Configure logging with date-based files and TTL retention
logger = configure_logging("storefront")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG
)

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} at {request.url.path}: {exc.detail}")
    return error_json(exc.detail, exc.code, exc.status_code, headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_json(BadRequestError.message, BadRequestError.code, 400, errors=errors)

# Global exception handler to ensure 500s for unexpected errors
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error at {request.url.path}: {exc}")
    return error_json(UnexpectedError.message, UnexpectedError.code, 500)

# Add GZip compression for larger JSON payloads
app.add_middleware(GZipMiddleware, minimum_size=500)

# Add logging context middleware to capture user_id and API path
app.add_middleware(RequestContextMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
app.include_router(users.router, prefix=settings.API_PREFIX, tags=["Users"])
app.include_router(comments.router, prefix=settings.API_PREFIX, tags=["Comments"])

@app.on_event("startup")
async def startup():
    app.state.notifier = Notifier(settings)
    if not app.state.notifier.configured:
        logger.warning("SMTP is not configured; notifications will be skipped")
    try:
        await init_mongo_indexes()
        logger.info("Mongo indexes ensured")
    except Exception as e:
        logger.warning(f"Mongo init skipped or failed: {e}")
    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown():
    close_mongo_client()
    logger.info("Application shutdown complete")

@app.get("/")
async def root():
    return {"message": settings.APP_NAME, "version": settings.VERSION}

@app.get("/health")
async def health_check():
    # Actively check DB connectivity
    try:
        db = get_mongo_db()
        if db is not None:
            await db.command({"ping": 1})
            return {"status": "healthy", "database": "mongo_connected"}
    except Exception as e:
        logger.warning(f"Health Mongo check failed: {e}")
    return {"status": "degraded", "database": "mongo_unavailable"}
