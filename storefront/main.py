# File: storefront/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api import auth, checkout, orders, payments, products, users
from storefront.api.deps import get_services
from storefront.core.config import APP_NAME, FRONTEND_URL, LOG_LEVEL, SEED_CATALOG
from storefront.core.errors import StorefrontError
from storefront.services.payments import build_gateway
from storefront.services.registry import Services, build_services, initialize

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def create_app(services: Optional[Services] = None, seed_catalog: bool = SEED_CATALOG) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(gateway=build_gateway())
        initialize(app.state.services, seed_catalog=seed_catalog)
        logger.info("%s ready", APP_NAME)
        yield

    app = FastAPI(title=APP_NAME, lifespan=lifespan)
    app.state.services = services

    # --- CORS Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Error responses ---
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else "Please provide all required fields"
        return _error(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, str(exc))

    # --- Routers ---
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(products.router, prefix="/api/products", tags=["products"])
    app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(payments.router, prefix="/api/stripe", tags=["payments"])
    app.include_router(checkout.router, prefix="/api/checkout", tags=["checkout"])

    @app.get("/api/health")
    def health(request: Request):
        primary_up = get_services(request).catalog.selector.ping()
        return {"status": "OK", "database": "connected" if primary_up else "fallback"}

    return app


app = create_app()
