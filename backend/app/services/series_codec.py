r"""backend\app\services\series_codec.py

Codec and summary helpers for historical stock series.

A series is stored on each product as compact JSON,
``[{"date":"2024-01-01","stock":50},...]``, ordered by date with one entry
per day.  Decoding validates that shape so the rest of the service can work
on trusted ``StockObservation`` values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from ..core.errors import InvalidInputError
from ..models.schemas import StockObservation


def encode_series(series: Sequence[StockObservation]) -> str:
    """Serialise ``series`` deterministically (stable key order, ISO dates, no whitespace)."""

    payload = [{"date": obs.date.isoformat(), "stock": int(obs.level)} for obs in series]
    return json.dumps(payload, separators=(",", ":"))


def decode_series(text: Optional[str]) -> List[StockObservation]:
    """Parse and validate a serialised series.

    Blank input is an empty series.  Raises ``InvalidInputError`` when the
    text is not a JSON array of ``{date, stock}`` objects, when a level is
    negative, or when dates are duplicated or out of order.
    """

    if text is None or not text.strip():
        return []
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"Historical stock data is not valid JSON: {exc.msg}") from exc
    if not isinstance(raw, list):
        raise InvalidInputError("Historical stock data must be a JSON array.")

    series: List[StockObservation] = []
    for index, entry in enumerate(raw):
        try:
            series.append(StockObservation.model_validate(entry))
        except ValidationError as exc:
            raise InvalidInputError(
                f"Historical stock entry {index} is invalid: {exc.errors()[0]['msg']}"
            ) from exc
    _check_ordering(series)
    return series


def _check_ordering(series: Sequence[StockObservation]) -> None:
    for previous, current in zip(series, series[1:]):
        if current.date == previous.date:
            raise InvalidInputError(f"Duplicate stock observation for {current.date.isoformat()}.")
        if current.date < previous.date:
            raise InvalidInputError("Stock observations must be ordered by ascending date.")


def append_observation(
    series: Sequence[StockObservation], observation: StockObservation
) -> List[StockObservation]:
    """Return a new series with ``observation`` appended.

    A snapshot on the last recorded day supersedes that day's level; a
    snapshot dated before the last one is rejected.
    """

    updated = list(series)
    if updated:
        last = updated[-1]
        if observation.date < last.date:
            raise InvalidInputError(
                f"Cannot record stock for {observation.date.isoformat()}; "
                f"history already extends to {last.date.isoformat()}."
            )
        if observation.date == last.date:
            updated[-1] = observation
            return updated
    updated.append(observation)
    return updated


@dataclass(frozen=True)
class SeriesSummary:
    """Descriptive statistics of a series, used to ground forecast prompts."""

    observations: int
    first_date: Optional[date] = None
    last_date: Optional[date] = None
    start_level: Optional[int] = None
    end_level: Optional[int] = None
    min_level: Optional[int] = None
    max_level: Optional[int] = None
    weekly_change: Optional[float] = None

    def describe(self) -> str:
        if self.observations == 0:
            return "No historical observations are available; any forecast is low confidence."
        parts = [
            f"{self.observations} observation(s) from {self.first_date} to {self.last_date}",
            f"level went from {self.start_level} to {self.end_level}",
            f"range {self.min_level}-{self.max_level}",
        ]
        if self.weekly_change is not None:
            parts.append(f"average change {self.weekly_change:+.1f} units/week")
        return "; ".join(parts) + "."

    def as_dict(self) -> dict[str, Any]:
        return {
            "observations": self.observations,
            "firstDate": self.first_date.isoformat() if self.first_date else None,
            "lastDate": self.last_date.isoformat() if self.last_date else None,
            "startLevel": self.start_level,
            "endLevel": self.end_level,
            "minLevel": self.min_level,
            "maxLevel": self.max_level,
            "weeklyChange": self.weekly_change,
        }


def summarize_series(series: Sequence[StockObservation]) -> SeriesSummary:
    """Summarise ``series`` with pandas; an empty series yields a zero-count summary."""

    if not series:
        return SeriesSummary(observations=0)

    levels = pd.Series(
        [obs.level for obs in series],
        index=pd.DatetimeIndex([pd.Timestamp(obs.date) for obs in series]),
        dtype="int64",
    )
    weekly_change: Optional[float] = None
    span_days = (levels.index[-1] - levels.index[0]).days
    if span_days > 0:
        weekly_change = round(float(levels.iloc[-1] - levels.iloc[0]) / span_days * 7.0, 2)

    return SeriesSummary(
        observations=int(levels.size),
        first_date=levels.index[0].date(),
        last_date=levels.index[-1].date(),
        start_level=int(levels.iloc[0]),
        end_level=int(levels.iloc[-1]),
        min_level=int(levels.min()),
        max_level=int(levels.max()),
        weekly_change=weekly_change,
    )
