"""Bar (OHLCV candle) data models."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, model_validator

logger = logging.getLogger(__name__)


class Bar(BaseModel):
    """One OHLCV sample; ``time`` is epoch seconds."""

    model_config = ConfigDict(frozen=True)

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _fill_missing(cls, data: Any) -> Any:
        """Fill open/high/low/volume from the close when a feed omits them."""
        if not isinstance(data, Mapping):
            return data
        values = dict(data)
        close = values.get("close")
        if values.get("open") is None:
            values["open"] = close
        if close is not None and values["open"] is not None:
            if values.get("high") is None:
                values["high"] = max(values["open"], close)
            if values.get("low") is None:
                values["low"] = min(values["open"], close)
        if values.get("volume") is None:
            values["volume"] = 0.0
        return values


class NextOpen(BaseModel):
    """The forming bar after the last completed one.

    Signals raised on the last completed bar execute at ``open``; an open
    trade is valued at ``close``.
    """

    model_config = ConfigDict(frozen=True)

    time: int
    open: float
    close: float = 0.0


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(float(value))
    except (TypeError, ValueError):
        return True


def clean_bars(raw: Iterable[Bar | Mapping[str, Any] | None]) -> list[Bar]:
    """Drop malformed entries and coerce the rest into ``Bar`` models.

    Entries that are ``None`` or whose close is missing or NaN are skipped.
    A missing open falls back to the close.
    """
    bars: list[Bar] = []
    dropped = 0
    for item in raw:
        if isinstance(item, Bar):
            bars.append(item)
            continue
        if item is None or _is_missing(item.get("close")):
            dropped += 1
            continue
        if _is_missing(item.get("open")):
            item = {**item, "open": None}
        bars.append(Bar.model_validate(item))
    if dropped:
        logger.debug("Dropped %d malformed bars", dropped)
    return bars
