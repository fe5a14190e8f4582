"""CSV export and import of saved locations."""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence

import pytz
from timezonefinder import TimezoneFinder
from tqdm import tqdm

from . import config
from .errors import CSVImportError, EmptyFile, InvalidData, InvalidFormat, StoreError
from .models import LocationEntry, SavedLocation, coordinates_valid
from .store import LocationStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_timezone_finder() -> TimezoneFinder:
    """Return a cached TimezoneFinder; loading its boundary data is slow."""
    return TimezoneFinder()


@lru_cache(maxsize=1024)
def local_timezone(latitude: float, longitude: float):
    """Time zone at the given coordinates, UTC over open sea."""
    tz_name = _get_timezone_finder().timezone_at(lat=latitude, lng=longitude)
    return pytz.timezone(tz_name) if tz_name else pytz.utc


def format_date(value: datetime, latitude: float, longitude: float) -> str:
    """Format as dd/MM/yyyy, H:mm in the location's local time."""
    local = value.astimezone(local_timezone(latitude, longitude))
    return f"{local:%d/%m/%Y}, {local.hour}:{local:%M}"


def parse_date(value: str, latitude: float, longitude: float) -> datetime:
    naive = datetime.strptime(value.strip(), config.CSV_DATE_FORMAT)
    tz = local_timezone(latitude, longitude)
    return tz.localize(naive).astimezone(timezone.utc)


def _row_for(location: SavedLocation, entry: Optional[LocationEntry]) -> List[str]:
    latitude = entry.latitude if entry else 0.0
    longitude = entry.longitude if entry else 0.0
    return [
        location.name,
        location.description,
        (entry.street or "") if entry else "",
        (entry.place or "") if entry else "",
        repr(latitude),
        repr(longitude),
        "true" if location.is_favorite else "false",
        format_date(location.created_at, latitude, longitude),
        format_date(entry.timestamp, latitude, longitude) if entry else "",
    ]


def export_csv(store: LocationStore) -> str:
    """Render every saved location as CSV text with all fields quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(config.CSV_HEADER) + "\n")
    for location, entry in store.with_entries():
        writer.writerow(_row_for(location, entry))
    return buffer.getvalue()


def export_to_file(store: LocationStore, path: Path) -> int:
    """Write the CSV export to `path` and return the number of rows."""
    text = export_csv(store)
    Path(path).write_text(text, encoding="utf-8")
    count = len(store.locations)
    logger.info("Exported %d locations to %s", count, path)
    return count


@dataclass
class ImportReport:
    """Outcome of an import run."""
    imported: int = 0
    duplicates: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.errors:
            return (
                f"Imported {self.imported} locations with {len(self.errors)} errors:\n"
                + "\n".join(self.errors)
            )
        if self.duplicates > 0:
            return f"{self.imported} locations imported, {self.duplicates} duplicates skipped"
        return f"{self.imported} locations imported successfully"


def _parse_float(value: str, field_name: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise InvalidData(field_name) from None


def _parse_bool(value: str) -> bool:
    normalized = value.strip()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    raise InvalidData("favorite status")


def is_duplicate(store: LocationStore, name: str, latitude: float, longitude: float,
                 tolerance: Optional[float] = None) -> bool:
    """True if a saved location has exactly this name and coordinates within tolerance."""
    if tolerance is None:
        tolerance = config.duplicate_tolerance
    for location in store.find_by_name(name):
        entry = store.entry_for(location)
        if entry is None:
            continue
        if abs(entry.latitude - latitude) <= tolerance and abs(entry.longitude - longitude) <= tolerance:
            return True
    return False


def _location_from_fields(fields: Sequence[str]) -> tuple:
    """Build (SavedLocation, LocationEntry) from one parsed row."""
    name = fields[0].strip()
    description = fields[1].strip()
    street = fields[2].strip()
    place = fields[3].strip()
    latitude = _parse_float(fields[4], "latitude")
    longitude = _parse_float(fields[5], "longitude")
    if not coordinates_valid(latitude, longitude):
        raise InvalidData("coordinates")
    is_favorite = _parse_bool(fields[6])
    try:
        created_at = parse_date(fields[7], latitude, longitude)
    except ValueError:
        raise InvalidData("created date") from None
    # Entry timestamp falls back to the created date
    try:
        timestamp = parse_date(fields[8], latitude, longitude)
    except ValueError:
        timestamp = created_at

    entry = LocationEntry(
        latitude=latitude,
        longitude=longitude,
        timestamp=timestamp,
        street=street or None,
        place=place or None,
    )
    location = SavedLocation(
        name=name,
        description=description,
        location_entry_id=entry.id,
        created_at=created_at,
        is_favorite=is_favorite,
    )
    return location, entry


def _read_records(text: str) -> List[tuple]:
    """Split CSV text into (first line number, fields) records.

    Quoted fields may span lines; blank records are dropped.
    """
    reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True)
    records = []
    start = 1
    try:
        for fields in reader:
            if any(value.strip() for value in fields):
                records.append((start, fields))
            start = reader.line_num + 1
    except csv.Error as e:
        raise InvalidFormat(f"{InvalidFormat.message} (line {reader.line_num}: {e})") from e
    return records


def import_csv(store: LocationStore, text: str, show_progress: bool = False) -> ImportReport:
    """Import CSV text into the store, skipping duplicates.

    Rows are validated one by one; bad rows are reported and skipped. The
    store is saved once after all rows are processed.

    Raises:
        EmptyFile: the text has no data rows.
        InvalidFormat: the text is not parseable as CSV.
        StoreError: the store could not be saved.
    """
    records = _read_records(text)
    if len(records) <= 1:
        raise EmptyFile()

    report = ImportReport()
    for row_number, fields in tqdm(records[1:], desc="Importing", unit="row", disable=not show_progress):
        try:
            if len(fields) < len(config.CSV_HEADER):
                raise InvalidFormat()
            location, entry = _location_from_fields(fields)
            if is_duplicate(store, location.name, entry.latitude, entry.longitude):
                report.duplicates += 1
                continue
            store.add(location, entry)
            report.imported += 1
        except InvalidData as e:
            report.errors.append(f"Row {row_number}: Invalid {e.field}")
        except CSVImportError as e:
            report.errors.append(f"Row {row_number}: {e}")

    store.save()
    logger.info(
        "Import finished: %d imported, %d duplicates, %d errors",
        report.imported, report.duplicates, len(report.errors),
    )
    return report


def import_from_file(store: LocationStore, path: Path, show_progress: bool = False) -> ImportReport:
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise StoreError(f"Cannot access the selected file: {e}") from e
    return import_csv(store, text, show_progress=show_progress)
