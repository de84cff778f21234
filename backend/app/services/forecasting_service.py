r"""backend\app\services\forecasting_service.py

Stock forecasting and reorder recommendations.

The service turns one item's historical stock series into an instruction for
the structured-generation client and interprets the reply.  The reply has two
fields: ``analysis`` (free text) and ``forecastedStockNeeds`` (a JSON array
encoded as a string).  A failed generation call is an error; a malformed
``forecastedStockNeeds`` is not, it is replaced by a single ``N/A`` record so
the analysis still reaches the user.

The reorder entries use one canonical key, ``recommended_stock_level``.
Replies that use ``level`` or ``recommendedLevel`` are accepted as well.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError

from ..core.errors import GenerationError, InvalidInputError
from ..core.observability import FORECAST_OUTCOMES
from ..models.schemas import (
    NOT_AVAILABLE,
    ForecastResult,
    ForecastStockInput,
    ForecastStockOutput,
    Recommendation,
    StockObservation,
)
from .llm_service import StructuredGenerationClient, with_timeout
from .series_codec import decode_series, encode_series, summarize_series

LOGGER = logging.getLogger(__name__)

UNPARSEABLE_REASON = "unparseable forecast data"
EMPTY_FORECAST = "[]"

FORECAST_PROMPT = """You are an expert inventory analyst. Analyze the historical stock data to forecast future stock needs for the product: {item_name}.

Historical Stock Data (JSON array of end-of-day stock levels, oldest first): {series}

Summary: {summary}

Provide:
1. analysis: a detailed analysis of the trend in the historical data, mentioning depletion rate and restocking patterns. If there is little or no data, say that the forecast is low confidence.
2. forecastedStockNeeds: a JSON array encoded as a string. Each element is an object with exactly two keys: "date" (YYYY-MM-DD, after the last observation) and "recommended_stock_level" (a non-negative integer: the number of units to hold by that date). Use one element per recommended restock point, oldest first.
"""


class _ForecastedNeed(BaseModel):
    """One reorder entry as it appears inside ``forecastedStockNeeds``."""

    date: date
    recommended_stock_level: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("recommended_stock_level", "recommendedLevel", "level"),
    )


_NEEDS_ADAPTER = TypeAdapter(List[_ForecastedNeed])
_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def fallback_recommendations() -> List[Recommendation]:
    """The single sentinel entry returned when forecast data cannot be parsed."""

    return [Recommendation(date=NOT_AVAILABLE, recommended_level=NOT_AVAILABLE, reason=UNPARSEABLE_REASON)]


def parse_forecasted_needs(text: Optional[str]) -> Optional[List[Recommendation]]:
    """Parse ``forecastedStockNeeds``; return ``None`` when it is not usable."""

    if text is None:
        return None
    candidate = text.strip()
    fenced = _CODE_FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        needs = _NEEDS_ADAPTER.validate_json(candidate)
    except ValidationError:
        return None
    return [
        Recommendation(date=need.date.isoformat(), recommended_level=need.recommended_stock_level)
        for need in needs
    ]


def build_forecast_instruction(item_name: str, series: Sequence[StockObservation]) -> str:
    """Render the forecasting instruction for ``item_name`` and ``series``."""

    return FORECAST_PROMPT.format(
        item_name=item_name,
        series=encode_series(series),
        summary=summarize_series(series).describe(),
    )


def _require_item_name(item_name: Optional[str]) -> str:
    name = (item_name or "").strip()
    if not name:
        FORECAST_OUTCOMES.labels("invalid_input").inc()
        raise InvalidInputError("An item name is required to forecast stock.")
    return name


class StockForecastingService:
    """Stateless forecast engine around an injected structured-generation client."""

    def __init__(self, client: StructuredGenerationClient) -> None:
        self._client = client

    async def generate_raw(
        self, item_name: str, series: Sequence[StockObservation]
    ) -> ForecastStockOutput:
        """Run the generation call and return the unparsed structured output."""

        name = _require_item_name(item_name)
        instruction = build_forecast_instruction(name, series)
        LOGGER.info("Requesting stock forecast for item=%s observations=%d", name, len(series))
        try:
            return await self._client.generate(instruction, ForecastStockOutput)
        except GenerationError:
            FORECAST_OUTCOMES.labels("generation_error").inc()
            raise

    async def forecast(self, item_name: str, series: Sequence[StockObservation]) -> ForecastResult:
        """Forecast reorder points for ``item_name`` from its historical ``series``.

        Raises ``InvalidInputError`` for a blank item name (no external call is
        made) and ``GenerationError`` when the generation call fails.  An
        unparseable ``forecastedStockNeeds`` never raises.
        """

        name = _require_item_name(item_name)
        output = await self.generate_raw(name, series)
        recommendations = parse_forecasted_needs(output.forecasted_stock_needs)
        if recommendations is None:
            LOGGER.warning(
                "Unparseable forecastedStockNeeds for item=%s; returning fallback record", name
            )
            FORECAST_OUTCOMES.labels("degraded").inc()
            recommendations = fallback_recommendations()
        else:
            FORECAST_OUTCOMES.labels("ok").inc()
        return ForecastResult(analysis=output.analysis, recommendations=recommendations)


async def forecast_stock(
    service: StockForecastingService,
    request: ForecastStockInput,
    timeout: Optional[float] = None,
) -> ForecastStockOutput:
    """Caller-facing forecast for a product name and serialised series.

    Input problems raise ``InvalidInputError``.  Generation failures (including
    timeouts) are converted into the fallback object with an empty forecast
    and the error message as the analysis.
    """

    name = _require_item_name(request.product_name)
    series = decode_series(request.historical_stock_data)
    try:
        return await with_timeout(service.generate_raw(name, series), timeout)
    except GenerationError as exc:
        LOGGER.error("Stock forecast failed for product=%s: %s", name, exc.message)
        return ForecastStockOutput(
            forecasted_stock_needs=EMPTY_FORECAST,
            analysis=f"Could not generate stock forecast: {exc.message}",
        )
