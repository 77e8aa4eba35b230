"""File adapters for bars and persisted trade rows.

Bars:
- CSV via pandas; a ``time`` column in epoch seconds or a ``date`` /
  ``datetime`` column parsed as UTC
- JSON via orjson; a list of bar objects or ``{"data": [...]}``

Trade rows: JSON list of row objects via orjson.

Malformed bars are not rejected here; ``clean_bars`` drops them before
computation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import orjson
import pandas as pd

from xtrender.models import Bar, TradeRow, clean_bars

logger = logging.getLogger(__name__)

_DATE_COLUMNS = ("date", "datetime", "timestamp")


def _frame_to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    df = df.rename(columns=str.lower)
    if "time" not in df.columns:
        date_col = next((c for c in _DATE_COLUMNS if c in df.columns), None)
        if date_col is None:
            raise ValueError(f"No time column; expected one of time, {', '.join(_DATE_COLUMNS)}")
        parsed = pd.to_datetime(df[date_col], utc=True)
        df["time"] = (parsed - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(seconds=1)
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def load_bars_csv(path: str | Path) -> list[Bar]:
    """Load OHLCV bars from a CSV file, oldest first."""
    df = pd.read_csv(path)
    bars = clean_bars(_frame_to_records(df))
    bars.sort(key=lambda b: b.time)
    logger.info("Loaded %d bars from %s", len(bars), path)
    return bars


def load_bars_json(path: str | Path) -> list[Bar]:
    """Load OHLCV bars from a JSON file, oldest first."""
    raw = orjson.loads(Path(path).read_bytes())
    if isinstance(raw, dict):
        raw = raw.get("data") or []
    bars = clean_bars(raw)
    bars.sort(key=lambda b: b.time)
    logger.info("Loaded %d bars from %s", len(bars), path)
    return bars


def load_bars(path: str | Path) -> list[Bar]:
    """Load bars, choosing the format by file extension."""
    if Path(path).suffix.lower() == ".json":
        return load_bars_json(path)
    return load_bars_csv(path)


def load_trade_rows(path: str | Path) -> list[TradeRow]:
    """Load persisted trade rows from a JSON list.

    Raises:
        OSError: If the file cannot be read.
        orjson.JSONDecodeError: If the file is not valid JSON.
        pydantic.ValidationError: If a row is malformed.
    """
    raw = orjson.loads(Path(path).read_bytes())
    rows = [TradeRow.model_validate(r) for r in raw]
    logger.info("Loaded %d trade rows from %s", len(rows), path)
    return rows


def save_trade_rows(rows: list[TradeRow], path: str | Path) -> None:
    """Write trade rows as a JSON list (inverse of load_trade_rows)."""
    data = [r.model_dump(mode="json") for r in rows]
    Path(path).write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
    logger.info("Saved %d trade rows to %s", len(rows), path)
