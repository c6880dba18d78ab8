"""Spreadsheet ingestion: beat workbooks/CSVs into outlet lists per beat."""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ...models.domain import Outlet

logger = logging.getLogger(__name__)

BEAT_COLUMNS = ("Beat Name", "Beat", "beat")
OUTLET_ID_COLUMNS = ("Outlet ID", "Outlet: Outlet Id")
LATITUDE_COLUMNS = ("Latitude", "lat")
LONGITUDE_COLUMNS = ("Longitude", "lng")
NAME_COLUMNS = ("Outlet Name", "Outlet: Account Name", "Outlet:Account Name")
DEFAULT_OUTLET_NAME = "N/A"


def _first_value(row: Mapping[str, Any], columns: Iterable[str]) -> Any:
    for column in columns:
        value = row.get(column)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _coerce_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


def _coerce_id(value: Any) -> str:
    # Excel stores numeric ids as floats; 1042.0 should read as "1042".
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_beat_rows(rows: Iterable[Mapping[str, Any]]) -> dict[str, list[Outlet]]:
    """Group rows by beat, keeping the first row seen for each outlet id within a beat.

    Rows without a beat, outlet id or usable coordinates are skipped.
    """
    beats: dict[str, list[Outlet]] = {}
    seen: dict[str, set[str]] = {}
    skipped = 0
    for row in rows:
        beat = _first_value(row, BEAT_COLUMNS)
        outlet_id = _first_value(row, OUTLET_ID_COLUMNS)
        lat = _first_value(row, LATITUDE_COLUMNS)
        lng = _first_value(row, LONGITUDE_COLUMNS)
        if beat is None or outlet_id is None or lat is None or lng is None:
            skipped += 1
            continue

        latitude, longitude = _coerce_float(lat), _coerce_float(lng)
        if latitude is None or longitude is None or not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            skipped += 1
            continue

        beat_name = str(beat).strip()
        outlet_key = _coerce_id(outlet_id)
        if outlet_key in seen.setdefault(beat_name, set()):
            continue
        seen[beat_name].add(outlet_key)

        name = _first_value(row, NAME_COLUMNS)
        beats.setdefault(beat_name, []).append(
            Outlet(
                outlet_id=outlet_key,
                latitude=latitude,
                longitude=longitude,
                name=str(name).strip() if name is not None else DEFAULT_OUTLET_NAME,
            )
        )

    if skipped:
        logger.warning(f"Skipped {skipped} spreadsheet row(s) missing beat, outlet id or coordinates")
    return beats


def _workbook_rows(payload: bytes) -> list[dict[str, Any]]:
    try:
        wb = load_workbook(io.BytesIO(payload), data_only=True, read_only=True)
    except (zipfile.BadZipFile, InvalidFileException) as exc:
        raise ValueError(f"Uploaded file is not a readable Excel workbook: {exc}") from exc
    try:
        sheet = wb.worksheets[0] if wb.worksheets else None
        if sheet is None:
            raise ValueError("Workbook contains no worksheets.")
        rows = sheet.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError("Workbook is empty.")
        columns = [str(name).strip() if name is not None else None for name in header]
        return [
            {column: value for column, value in zip(columns, values) if column}
            for values in rows
            if any(value is not None for value in values)
        ]
    finally:
        wb.close()


def load_beats_from_workbook(payload: bytes) -> dict[str, list[Outlet]]:
    return parse_beat_rows(_workbook_rows(payload))


def load_beats_from_csv(text: str) -> dict[str, list[Outlet]]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")
    return parse_beat_rows(reader)


def load_beats(filename: str, payload: bytes) -> dict[str, list[Outlet]]:
    """Dispatch on file extension (.xlsx/.xlsm or .csv)."""
    suffix = Path(filename or "").suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        return load_beats_from_workbook(payload)
    if suffix == ".csv":
        return load_beats_from_csv(payload.decode("utf-8-sig"))
    raise ValueError(f"Unsupported beat file type '{suffix or filename}'. Upload an .xlsx or .csv file.")
