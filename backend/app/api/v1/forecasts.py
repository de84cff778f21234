"""Routes for stock forecasting."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.config import Settings
from ...core.errors import GenerationError
from ...models import schemas
from ...services.forecasting_service import StockForecastingService, forecast_stock
from ...services.inventory_service import InventoryStore
from ...services.llm_service import with_timeout
from ..deps import (
    error_payload,
    get_current_user,
    get_forecasting_service,
    get_settings,
    get_store,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/forecasts/stock", response_model=schemas.ForecastStockOutput)
async def post_stock_forecast(
    body: schemas.ForecastStockInput,
    service: StockForecastingService = Depends(get_forecasting_service),
    settings: Settings = Depends(get_settings),
) -> schemas.ForecastStockOutput:
    """Forecast stock needs from a caller-supplied serialised series.

    Generation failures come back as a 200 with an empty forecast and the
    failure message as the analysis.
    """

    LOGGER.info("Stock forecast request received for product=%s", body.product_name)
    return await forecast_stock(service, body, timeout=settings.generation_timeout_seconds)


@router.get("/products/{product_id}/forecast", response_model=schemas.ForecastResult)
async def get_product_forecast(
    product_id: str,
    store: InventoryStore = Depends(get_store),
    service: StockForecastingService = Depends(get_forecasting_service),
    settings: Settings = Depends(get_settings),
) -> schemas.ForecastResult:
    """Forecast reorder points for a stored product from its recorded history."""

    product = store.get_product(product_id)
    series = store.get_historical_series(product_id)
    LOGGER.info("Forecast request received for product_id=%s observations=%d", product_id, len(series))
    try:
        return await with_timeout(
            service.forecast(product.name, series), settings.generation_timeout_seconds
        )
    except GenerationError as exc:
        LOGGER.warning("Forecast generation failed for product_id=%s: %s", product_id, exc.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=error_payload(
                "forecast_failed", f"Could not generate stock forecast: {exc.message}"
            ),
        ) from exc


@router.get("/products/{product_id}/history", response_model=List[schemas.StockObservation])
def get_product_history(
    product_id: str,
    store: InventoryStore = Depends(get_store),
) -> List[schemas.StockObservation]:
    """Return the product's recorded stock series, oldest first."""

    return store.get_historical_series(product_id)
