# backend/lib/meter_profile/io.py
import csv
import logging
import math
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from .models import EnergyReading, PF_CLASSES

logger = logging.getLogger(__name__)


class LoadError(Exception):
    """The CSV resource could not be read or did not match the schema."""


def _parse_timestamp(text: str) -> datetime:
    # fromisoformat does not take a bare Z on older interpreters
    return datetime.fromisoformat(text.strip().replace("Z", "+00:00"))


def _parse_float(text: str) -> float:
    value = float(text)
    # float() takes "nan" and "inf", which break every comparison downstream
    if not math.isfinite(value):
        raise ValueError(f"{text!r} is not a finite number")
    return value


def _parse_ratio(text: str) -> float:
    value = _parse_float(text)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{value} is outside [0, 1]")
    return value


def _parse_percent(text: str) -> float:
    value = _parse_float(text)
    if not 0.0 <= value <= 100.0:
        raise ValueError(f"{value} is outside [0, 100]")
    return value


def _parse_flag(text: str) -> bool:
    value = float(text)
    if value not in (0.0, 1.0):
        raise ValueError(f"{text!r} is not 0 or 1")
    return value == 1.0


def _parse_int(text: str) -> int:
    value = float(text)
    if not value.is_integer():
        raise ValueError(f"{text!r} is not an integer")
    return int(value)


def _parse_pf_class(text: str) -> str:
    value = text.strip()
    if value not in PF_CLASSES:
        raise ValueError(f"{value!r} is not one of {', '.join(PF_CLASSES)}")
    return value


# CSV column -> (EnergyReading field, parser)
SCHEMA: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "Time": ("timestamp", _parse_timestamp),
    "Voltage_V": ("voltage_v", _parse_float),
    "Frequency_Hz": ("frequency_hz", _parse_float),
    "Current_A": ("current_a", _parse_float),
    "ActivePower_kW": ("active_power_kw", _parse_float),
    "PowerFactor": ("power_factor", _parse_ratio),
    "ApparentPower_kVA": ("apparent_power_kva", _parse_float),
    "ReactivePower_kVAr": ("reactive_power_kvar", _parse_float),
    "Energy_kWh": ("energy_kwh", _parse_float),
    "Cost_cum_BDT": ("cost_cum", _parse_float),
    "PF_Class": ("pf_class", _parse_pf_class),
    "Compressor_ON": ("compressor_on", _parse_flag),
    "DutyCycle_%_24H": ("duty_cycle_pct_24h", _parse_percent),
    "Cycle_ID": ("cycle_id", _parse_int),
}


def _parse_row(row: Dict[str, str], line_num: int) -> EnergyReading:
    fields = {}
    for column, (field, parser) in SCHEMA.items():
        raw = (row.get(column) or "").strip()
        if not raw:
            raise LoadError(f"Line {line_num}: missing value for {column}")
        try:
            fields[field] = parser(raw)
        except ValueError as e:
            raise LoadError(f"Line {line_num}: bad {column} value {raw!r} ({e})") from e
    return EnergyReading(**fields)


def _check_cumulative(readings: List[EnergyReading]) -> None:
    for prev, curr in zip(readings, readings[1:]):
        if curr.energy_kwh < prev.energy_kwh:
            raise LoadError(f"Energy_kWh decreases at {curr.timestamp.isoformat()}")
        if curr.cost_cum < prev.cost_cum:
            raise LoadError(f"Cost_cum_BDT decreases at {curr.timestamp.isoformat()}")


def parse_csv_string(csv_text: str) -> List[EnergyReading]:
    """
    Parse smart-plug CSV text into readings sorted by timestamp.

    The header must contain every column in SCHEMA; extra columns are
    ignored. Blank lines are skipped. Timestamps are ISO8601, e.g.
    2025-11-01 00:00:00 or 2025-11-01T00:00:00Z.
    Raises LoadError on the first problem, so a partially parsed file is
    never returned.
    """
    f = StringIO(csv_text.strip())
    reader = csv.DictReader(f)
    try:
        fieldnames = reader.fieldnames
    except csv.Error as e:
        raise LoadError(f"Malformed CSV header: {e}") from e
    if not fieldnames:
        raise LoadError("CSV has no header row")
    header = [name.strip() for name in fieldnames]
    missing = [column for column in SCHEMA if column not in header]
    if missing:
        raise LoadError(f"CSV header is missing columns: {', '.join(missing)}")
    reader.fieldnames = header

    readings = []
    try:
        for row in reader:
            if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                continue
            readings.append(_parse_row(row, reader.line_num))
    except csv.Error as e:
        raise LoadError(f"Line {reader.line_num}: {e}") from e

    try:
        # sorted() is stable, equal timestamps keep file order
        readings = sorted(readings, key=lambda r: r.timestamp)
    except TypeError as e:
        raise LoadError("CSV mixes timestamps with and without a timezone") from e
    _check_cumulative(readings)
    return readings


def load_csv(location: str, s3_service=None) -> List[EnergyReading]:
    """
    Read and parse the CSV at a local path or an s3://bucket/key URI.

    If s3_service is given, a location without the s3:// prefix is taken
    as a key in that service's bucket. One attempt, no retries.
    """
    if location.startswith("s3://"):
        bucket, _, key = location[len("s3://"):].partition("/")
        if not bucket or not key:
            raise LoadError(f"Invalid S3 location: {location}")
        if s3_service is None:
            from backend.lib.s3_service import S3Service
            s3_service = S3Service(bucket_name=bucket)
        content = s3_service.download_file(key, bucket_name=bucket)
    elif s3_service is not None:
        content = s3_service.download_file(location)
    else:
        try:
            content = Path(location).read_bytes()
        except OSError as e:
            logger.error("Could not read %s: %s", location, e)
            raise LoadError(f"Could not read {location}: {e}") from e

    if content is None:
        logger.error("Could not download %s from S3", location)
        raise LoadError(f"Could not download {location} from S3")

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise LoadError(f"{location} is not UTF-8 text") from e

    readings = parse_csv_string(text)
    logger.info("Loaded %d readings from %s", len(readings), location)
    return readings
