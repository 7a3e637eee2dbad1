"""Parsing of the uploaded flight CSV into :class:`FlightRecord` rows."""

from __future__ import annotations

import io
import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

import pandas as pd

from .schemas import FlightRecord


logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "flight_number",
    "flight_date",
    "origin",
    "destination",
    "tail_number",
    "aircraft_type",
    "gross_weight_cargo_kg",
    "gross_volume_cargo_m3",
    "passenger_count",
    "baggage_weight_kg",
    "fuel_weight_kg",
    "fuel_price_per_kg",
    "cargo_price_per_kg",
)

_TEXT_COLUMNS = CSV_COLUMNS[:6]
_FLOAT_COLUMNS = (
    "gross_weight_cargo_kg",
    "gross_volume_cargo_m3",
    "baggage_weight_kg",
    "fuel_weight_kg",
    "fuel_price_per_kg",
    "cargo_price_per_kg",
)


class CsvUploadError(ValueError):
    """Raised when an uploaded file cannot be read as flight CSV data."""


def _coerce_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _coerce_int(value: Any) -> int:
    return int(_coerce_float(value))


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


def flight_from_mapping(row: Mapping[str, Any]) -> FlightRecord:
    """Build a flight from a CSV row; unparseable numbers become ``0``."""

    values = {column: _coerce_text(row.get(column)) for column in _TEXT_COLUMNS}
    for column in _FLOAT_COLUMNS:
        values[column] = _coerce_float(row.get(column))
    values["passenger_count"] = _coerce_int(row.get("passenger_count"))
    return FlightRecord(**values)


def parse_flights_csv(content: Union[str, bytes]) -> List[FlightRecord]:
    """Parse CSV text with the fixed flight header into flight records."""

    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CsvUploadError("File is not UTF-8 encoded text.") from exc
    else:
        text = content.lstrip("\ufeff")

    if not text.strip():
        return []

    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as exc:
        raise CsvUploadError(f"Could not parse CSV: {exc}") from exc

    frame.columns = [str(column).strip() for column in frame.columns]
    missing = [column for column in CSV_COLUMNS if column not in frame.columns]
    if missing:
        logger.debug("CSV is missing columns %s; defaulting them", missing)

    flights = [flight_from_mapping(row) for row in frame.to_dict(orient="records")]
    logger.debug("Parsed %d flights from CSV", len(flights))
    return flights


def load_flights_from_upload(file_name: Optional[str], content: Union[str, bytes]) -> List[FlightRecord]:
    """Validate an uploaded file name and parse its contents."""

    if not file_name or not file_name.lower().endswith(".csv"):
        raise CsvUploadError("Please upload a .csv file.")
    return parse_flights_csv(content)


def flights_to_frame(flights: Iterable[FlightRecord]) -> pd.DataFrame:
    rows = [flight.as_dict() for flight in flights]
    return pd.DataFrame(rows, columns=list(CSV_COLUMNS))
