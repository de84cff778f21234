r"""backend/tests/test_forecasting.py"""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from backend.app.core.errors import GenerationError, InvalidInputError
from backend.app.models.schemas import ForecastStockInput, ForecastStockOutput, StockObservation
from backend.app.services.forecasting_service import (
    StockForecastingService,
    forecast_stock,
    parse_forecasted_needs,
)

from conftest import StubGenerationClient

DESI_GHEE_SERIES = [
    StockObservation(date=date(2024, 1, 1), level=50),
    StockObservation(date=date(2024, 1, 8), level=40),
    StockObservation(date=date(2024, 1, 15), level=20),
]


def _service(needs: str, analysis: str = "Steady demand.") -> tuple[StockForecastingService, StubGenerationClient]:
    stub = StubGenerationClient(
        {ForecastStockOutput: ForecastStockOutput(forecasted_stock_needs=needs, analysis=analysis)}
    )
    return StockForecastingService(stub), stub


def test_declining_series_end_to_end() -> None:
    analysis = "Stock is declining ~10 units/week; reorder recommended."
    service, stub = _service('[{"date":"2024-01-22","recommended_stock_level":60}]', analysis)

    result = asyncio.run(service.forecast("Desi Ghee", DESI_GHEE_SERIES))

    assert result.analysis == analysis
    assert len(result.recommendations) == 1
    assert result.recommendations[0].date == "2024-01-22"
    assert result.recommendations[0].recommended_level == 60
    assert result.recommendations[0].reason is None

    instruction, schema = stub.calls[0]
    assert schema is ForecastStockOutput
    assert "Desi Ghee" in instruction
    assert (
        '[{"date":"2024-01-01","stock":50},{"date":"2024-01-08","stock":40},'
        '{"date":"2024-01-15","stock":20}]'
    ) in instruction


def test_empty_series_is_valid_input() -> None:
    service, stub = _service("[]", "No history; low confidence.")

    result = asyncio.run(service.forecast("Classic T-Shirt", []))

    assert result.analysis == "No history; low confidence."
    assert result.recommendations == []
    assert "Historical Stock Data (JSON array of end-of-day stock levels, oldest first): []" in stub.calls[0][0]
    assert "low confidence" in stub.calls[0][0]


@pytest.mark.parametrize("name", ["", "   ", None])
def test_blank_item_name_fails_without_external_call(name) -> None:
    service, stub = _service("[]")

    with pytest.raises(InvalidInputError):
        asyncio.run(service.forecast(name, DESI_GHEE_SERIES))

    assert stub.calls == []


def test_unparseable_needs_degrade_to_fallback_record() -> None:
    service, _ = _service("not-json-at-all", "Demand is rising.")

    result = asyncio.run(service.forecast("Desi Ghee", DESI_GHEE_SERIES))

    assert result.analysis == "Demand is rising."
    assert len(result.recommendations) == 1
    fallback = result.recommendations[0]
    assert fallback.date == "N/A"
    assert fallback.recommended_level == "N/A"
    assert fallback.reason == "unparseable forecast data"
    assert result.model_dump(by_alias=True)["recommendations"][0]["recommendedLevel"] == "N/A"


def test_generation_failure_propagates_from_engine() -> None:
    service, stub = _service("[]")
    stub.error = GenerationError("network down")

    with pytest.raises(GenerationError, match="network down"):
        asyncio.run(service.forecast("Desi Ghee", DESI_GHEE_SERIES))


def test_caller_facing_forecast_returns_fallback_on_generation_failure() -> None:
    service, stub = _service("[]")
    stub.error = GenerationError("network down")
    request = ForecastStockInput(product_name="Desi Ghee", historical_stock_data="[]")

    output = asyncio.run(forecast_stock(service, request))

    assert output.forecasted_stock_needs == "[]"
    assert output.analysis == "Could not generate stock forecast: network down"


def test_caller_facing_forecast_passes_raw_output_through() -> None:
    needs = '[{"date":"2024-01-22","recommended_stock_level":60}]'
    service, stub = _service(needs, "Reorder soon.")
    request = ForecastStockInput(
        product_name="Desi Ghee",
        historical_stock_data='[{"date":"2024-01-01","stock":50}]',
    )

    output = asyncio.run(forecast_stock(service, request))

    assert output.forecasted_stock_needs == needs
    assert output.analysis == "Reorder soon."
    assert len(stub.calls) == 1


def test_caller_facing_forecast_rejects_malformed_history_before_calling() -> None:
    service, stub = _service("[]")
    request = ForecastStockInput(product_name="Desi Ghee", historical_stock_data="{broken")

    with pytest.raises(InvalidInputError):
        asyncio.run(forecast_stock(service, request))

    assert stub.calls == []


def test_caller_facing_forecast_times_out_to_fallback() -> None:
    class SlowClient:
        async def generate(self, instruction, output_schema):
            await asyncio.sleep(1.0)

    service = StockForecastingService(SlowClient())
    request = ForecastStockInput(product_name="Desi Ghee")

    output = asyncio.run(forecast_stock(service, request, timeout=0.01))

    assert output.forecasted_stock_needs == "[]"
    assert "did not respond" in output.analysis


@pytest.mark.parametrize(
    "text, expected",
    [
        ('[{"date":"2024-03-01","level":12}]', [("2024-03-01", 12)]),
        ('[{"date":"2024-03-01","recommendedLevel":"15"}]', [("2024-03-01", 15)]),
        ('```json\n[{"date":"2024-03-01","recommended_stock_level":9}]\n```', [("2024-03-01", 9)]),
        ("[]", []),
    ],
)
def test_parse_accepts_canonical_key_aliases_and_fences(text: str, expected) -> None:
    parsed = parse_forecasted_needs(text)

    assert parsed is not None
    assert [(rec.date, rec.recommended_level) for rec in parsed] == expected


@pytest.mark.parametrize(
    "text",
    [
        '{"date":"2024-03-01","recommended_stock_level":9}',
        '[{"date":"2024-03-01","recommended_stock_level":-4}]',
        '[{"date":"soon","recommended_stock_level":4}]',
        '[{"when":"2024-03-01","qty":4}]',
        "",
    ],
)
def test_parse_rejects_unusable_structures(text: str) -> None:
    assert parse_forecasted_needs(text) is None


def test_degraded_forecast_logs_trimmed_item_name(caplog) -> None:
    service, stub = _service("not-json-at-all")

    with caplog.at_level("WARNING", logger="backend.app.services.forecasting_service"):
        asyncio.run(service.forecast("  Desi Ghee  ", DESI_GHEE_SERIES))

    assert "item=Desi Ghee;" in caplog.text
    assert "item=  Desi Ghee" not in caplog.text
    assert "  Desi Ghee  " not in stub.calls[0][0]
