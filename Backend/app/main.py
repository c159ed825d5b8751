# Backend/app/main.py
from __future__ import annotations

# --- ensure project root is on sys.path so `api.*`, `app.*` and `services.*` are importable ---
import sys
from pathlib import Path
THIS_FILE = Path(__file__).resolve()
BACKEND_ROOT = THIS_FILE.parents[1]  # .../Backend
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))
# -------------------------------------------------------------------------

from typing import Any, Dict, List

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# --- Logging & request-id ---
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from app.config import settings, using_default_jwt_secret
from app.core.logging import configure_logging, logger
from app.core.request_id import REQUEST_ID_HEADER, clear_request_id, new_request_id, set_request_id
from app.core.responses import ApiError, error_envelope
from app.models.location import REQUIRED_FIELDS_MESSAGE
from services.db_service import close_database, connect_database
from services.photo_storage_service import get_photo_storage

from api.routers.auth import router as auth_router
from api.routers.geocode import router as geocode_router
from api.routers.locations import router as locations_router
from api.routers.system import router as system_router

configure_logging(service_name="location-notebook")

app = FastAPI(
    title="Location Notebook - Backend",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.on_event("startup")
async def _startup() -> None:
    if using_default_jwt_secret():
        logger.warning("jwt_secret_default", hint="set JWT_SECRET in Backend/.env")
    await connect_database()
    storage = get_photo_storage()
    if storage.is_configured:
        await storage.ping()
    else:
        logger.warning("cloudinary_not_configured")


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_database()


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("x-request-id") or new_request_id()
        set_request_id(req_id)

        logger.info("request_started", method=request.method, path=str(request.url.path))
        try:
            response: StarletteResponse = await call_next(request)
        except Exception as exc:
            logger.error("request_exception", error=str(exc.__class__.__name__))
            clear_request_id()
            raise
        logger.info("request_ended", status_code=response.status_code)
        response.headers[REQUEST_ID_HEADER] = req_id
        clear_request_id()
        return response


# --- CORS ---
# First added = outermost, so CORS headers also land on error responses.
_allowed_origins: List[str] = list(dict.fromkeys([*settings.CORS_ORIGINS, settings.FRONTEND_URL.rstrip("/")]))
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    expose_headers=["Content-Length", REQUEST_ID_HEADER],
)

app.add_middleware(RequestIdMiddleware)


def _not_found_body(request: Request) -> Dict[str, Any]:
    return {
        "success": False,
        "message": "API endpoint not found",
        "requestedPath": request.url.path,
        "method": request.method,
        "url": str(request.url),
    }


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unmatched routes raise a plain 404 "Not Found"
    if exc.status_code == 404 and exc.detail == "Not Found" and not isinstance(exc, ApiError):
        return JSONResponse(status_code=404, content=_not_found_body(request))

    error = exc.error if isinstance(exc, ApiError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(str(exc.detail), error=error),
        headers=dict(exc.headers or {}) or None,
    )


def _validation_message(errors: List[Dict[str, Any]]) -> str:
    for err in errors:
        if err.get("type") == "value_error":
            msg = str(err.get("msg", ""))
            return msg.removeprefix("Value error, ")
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if "latitude" in loc or "longitude" in loc:
            if err.get("type") == "missing":
                return REQUIRED_FIELDS_MESSAGE
            return "Invalid coordinates"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return "Invalid request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(list(exc.errors()))
    logger.info("request_validation_failed", path=request.url.path, message=message)
    return JSONResponse(status_code=400, content=error_envelope(message))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_envelope("Server error", error=str(exc)),
    )


@app.get("/")
async def root():
    return {"success": True, "app": "Location Notebook API", "message": "Up & running"}


# --- /api router ---
api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(locations_router)
api_router.include_router(geocode_router)
api_router.include_router(system_router)
app.include_router(api_router)
