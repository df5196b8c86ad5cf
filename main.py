import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import admin
import auth
import cart
import catalog
import contact
import orders
from auth import get_db
from config import Settings, setup_logging
from database import Database
from errors import StoreError

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API.

    With no ``database`` the app opens its own connection at startup from
    ``settings`` and closes it at shutdown; an unreachable database aborts
    startup. A ``database`` passed in is used as is and left open.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = database is None
        db = Database.from_settings(settings).connect() if owned else database
        db.ensure_indexes()
        app.state.db = db
        try:
            yield
        finally:
            if owned:
                db.close()

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, settings)

    for module in (auth, catalog, cart, orders, contact, admin):
        app.include_router(module.router)

    app.add_api_route("/", root, methods=["GET"])
    app.add_api_route("/test", test_database, methods=["GET"])
    return app


def register_error_handlers(app: FastAPI, settings: Settings):
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = sorted({".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()})
        return JSONResponse(status_code=400, content={
            "success": False,
            "message": "Invalid request: " + ", ".join(fields),
            "error": "ValidationError",
            "fields": fields,
        })

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={
            "success": False,
            "message": str(exc.detail),
            "error": "HTTPError",
        })

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = {"success": False, "message": "Server error", "error": "InternalError"}
        if not settings.is_production:
            body["error"] = str(exc)
            body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=500, content=body)


# ----------------------- Health -----------------------
def root():
    return {"message": "E-Commerce API is running"}


def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": db.name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = db.collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except Exception as e:
        log.warning("Database check failed: %s", e)
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
