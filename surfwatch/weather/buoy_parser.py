# ABOUTME: Parser for NDBC real-time buoy text reports (realtime2 .txt files)
# ABOUTME: Turns the header row and the most recent data row into a BuoyReading

from datetime import datetime, timezone
from typing import Optional

from surfwatch.debug import debug_log
from surfwatch.errors import ParseError
from surfwatch.weather.models import BuoyReading, degrees_to_cardinal

REQUIRED_COLUMNS = ("WVHT", "DPD", "WSPD", "WD")

# Current NDBC files label wind direction WDIR
COLUMN_ALIASES = {"WDIR": "WD", "YYYY": "YY"}


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


# Fallbacks for absent or non-numeric time columns, oldest-possible-date parts
TIME_PART_DEFAULTS = {"YY": 2000, "MM": 1, "DD": 1, "hh": 0, "mm": 0}


def _time_part(row: dict, column: str) -> int:
    value = row.get(column)
    try:
        return int(value)
    except (TypeError, ValueError):
        debug_log(f"Time column {column} is {value!r}, using {TIME_PART_DEFAULTS[column]}", "BUOY")
        return TIME_PART_DEFAULTS[column]


def _parse_timestamp(row: dict) -> datetime:
    year, month, day, hour, minute = (_time_part(row, column) for column in TIME_PART_DEFAULTS)

    # Two-digit years are 2000-based
    if year < 100:
        year += 2000

    try:
        return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError as e:
        raise ParseError("malformed") from e


def parse_buoy_text(raw_text: str) -> BuoyReading:
    """
    Parse an NDBC station report.

    Format:
        Line 1: column names (may start with '#')
        Line 2: units
        Line 3+: observations, most recent first

    Args:
        raw_text: Full text of the report

    Returns:
        BuoyReading for the most recent observation

    Raises:
        ParseError: if the report is short, misaligned, or a required field
            is missing or non-numeric
    """
    lines = [line for line in raw_text.splitlines() if line.strip()]
    if len(lines) < 3:
        raise ParseError("malformed")

    headers = lines[0].split()
    headers[0] = headers[0].lstrip("#")
    headers = [COLUMN_ALIASES.get(h, h) for h in headers]
    values = lines[2].split()

    if len(headers) != len(values):
        raise ParseError("malformed")

    row = dict(zip(headers, values))

    required = {}
    for column in REQUIRED_COLUMNS:
        value = _to_float(row.get(column))
        if value is None:
            raise ParseError("malformed")
        required[column] = value

    # WTMP is optional; "MM" (missing) reads as absent
    water_temperature = _to_float(row.get("WTMP"))

    return BuoyReading(
        wave_height=required["WVHT"],
        wave_period=required["DPD"],
        wind_speed=required["WSPD"],
        wind_direction=degrees_to_cardinal(required["WD"]),
        water_temperature=water_temperature,
        timestamp=_parse_timestamp(row),
    )
