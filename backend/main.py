# backend/main.py
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import init_db
from utils.errors import AppError

from routes.auth import router as auth_router
from routes.logs import router as logs_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.products import router as products_router
from routes.sizes import router as sizes_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialisation
init_db()

app = FastAPI(title="Storefront API", version="1.0.0")

# Uploads - make sure the directory exists
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- ERROR ENVELOPE ----

def _fail(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message}, headers=headers)

@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _fail(exc.status_code, exc.message, headers)

@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    # First failing field only, e.g. "body.quantity: Input should be a valid integer"
    errors = exc.errors()
    if not errors:
        return _fail(400, "Invalid input")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return _fail(400, f"{location}: {first.get('msg', 'invalid value')}")

@app.exception_handler(StarletteHTTPException)
def handle_http_error(request: Request, exc: StarletteHTTPException):
    return _fail(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _fail(500, "Internal server error")


# Router registration
app.include_router(auth_router)
app.include_router(sizes_router)
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(logs_router)

@app.get("/")
def read_root():
    return {"success": True, "message": "Storefront API is running"}
