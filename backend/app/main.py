r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API exposes the inventory back office: products and their stock history,
orders, purchase orders, suppliers, festivals and deals, users and
notifications, plus AI-assisted stock forecasts and catalogue content.
Configuration is read from environment variables (and a `.env` file at the
repository root); bearer tokens are listed in the identities YAML file.

The document store, the identity provider and the Gemini clients are built
once in the lifespan handler and shared through ``app.state``.  Tests pass
their own instances to ``create_app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from .api.deps import error_payload
from .api.v1 import (
    content,
    forecasts,
    health,
    notifications,
    orders,
    products,
    promotions,
    purchase_orders,
    suppliers,
    users,
)
from .core.config import Settings, get_settings
from .core.errors import (
    AuthenticationError,
    BackOfficeError,
    GenerationError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from .core.observability import RateLimitAndMetricsMiddleware, configure_logging, metrics_endpoint
from .core.security import IdentityProvider
from .services.content_service import ContentGenerationService
from .services.forecasting_service import StockForecastingService
from .services.inventory_service import InventoryStore
from .services.llm_service import (
    GeminiGenerationClient,
    GeminiImageClient,
    ImageGenerationClient,
    StructuredGenerationClient,
)

# Load .env from repo root
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

LOGGER = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    InvalidInputError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    GenerationError: 502,
}


async def _domain_error_handler(request: Request, exc: BackOfficeError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        LOGGER.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": error_payload(exc.code, exc.message)},
        headers=headers,
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[InventoryStore] = None,
    generation_client: Optional[StructuredGenerationClient] = None,
    identity: Optional[IdentityProvider] = None,
    image_client: Optional[ImageGenerationClient] = None,
) -> FastAPI:
    """Build the application; collaborators not supplied are created at startup."""

    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.store = store or InventoryStore(
            settings.store_path,
            default_low_stock_threshold=settings.default_low_stock_threshold,
        )
        app.state.identity = identity or IdentityProvider.from_yaml(settings.identities_path)
        for profile in app.state.identity.seed_profiles:
            app.state.store.ensure_user(profile)

        client = generation_client or GeminiGenerationClient(
            settings.gemini_api_key, settings.gemini_model
        )
        images = image_client or GeminiImageClient(
            settings.gemini_api_key, settings.gemini_image_model
        )
        app.state.generation_client = client
        app.state.image_client = images
        app.state.forecasting_service = StockForecastingService(client)
        app.state.content_service = ContentGenerationService(
            client,
            app.state.store,
            timeout=settings.generation_timeout_seconds,
            image_client=images,
        )
        LOGGER.info(
            "LLM enabled: %s model=%s",
            bool(settings.gemini_api_key) or generation_client is not None,
            settings.gemini_model,
        )
        try:
            yield
        finally:
            for handle in (client, images):
                close = getattr(handle, "close", None)
                if callable(close):
                    close()
            app.state.store.close()

    configure_logging(settings.log_level)
    app = FastAPI(title="Storefront Back Office API", version="0.1.0", lifespan=lifespan)

    # Allow cross-origin requests from the back-office UI (and others).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),  # In production specify your UI domain(s)
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RateLimitAndMetricsMiddleware, per_minute=settings.rate_limit_per_min)
    app.add_exception_handler(BackOfficeError, _domain_error_handler)

    # Include versioned routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(forecasts.router, prefix="/api/v1")
    app.include_router(products.router, prefix="/api/v1")
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(purchase_orders.router, prefix="/api/v1")
    app.include_router(suppliers.router, prefix="/api/v1")
    app.include_router(promotions.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(content.router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    def _root() -> RedirectResponse:
        """Redirect the root path to the interactive docs."""

        return RedirectResponse(url="/docs")

    @app.get("/metrics", include_in_schema=False)
    async def _metrics() -> Response:
        """Expose Prometheus metrics."""

        return metrics_endpoint()

    return app


app = create_app()
