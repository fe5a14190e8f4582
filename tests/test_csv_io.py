from __future__ import annotations

import csv
from datetime import datetime, timezone

import pytest

from gps_locater import csv_io
from gps_locater.errors import EmptyFile, StoreError
from gps_locater.models import LocationEntry, SavedLocation
from gps_locater.store import LocationStore

HEADER = "Name,Description,Street,Place,Latitude,Longitude,Favorite,Created Date,Location Added Date"


def add_location(store, name, lat, lon, description="", favorite=False, created_at=None, street=None, place=None):
    created_at = created_at or datetime(2024, 1, 15, 12, 30, tzinfo=timezone.utc)
    entry = LocationEntry(latitude=lat, longitude=lon, timestamp=created_at, street=street, place=place)
    location = SavedLocation(
        name=name,
        description=description,
        location_entry_id=entry.id,
        created_at=created_at,
        is_favorite=favorite,
    )
    store.add(location, entry)
    return location, entry


def test_export_header_and_quoting(store):
    add_location(store, "Dam", 52.3731, 4.8922, description='Meet at "the" monument, noon',
                 favorite=True, street="Dam", place="Amsterdam, North Holland")

    lines = csv_io.export_csv(store).splitlines()

    assert lines[0] == HEADER
    assert lines[1] == (
        '"Dam","Meet at ""the"" monument, noon","Dam","Amsterdam, North Holland",'
        '"52.3731","4.8922","true","15/01/2024, 13:30","15/01/2024, 13:30"'
    )


def test_export_dates_use_local_time(store):
    # New York is UTC-5 in January
    add_location(store, "NYC", 40.7128, -74.0060, created_at=datetime(2024, 1, 15, 8, 5, tzinfo=timezone.utc))

    row = next(csv.reader(csv_io.export_csv(store).splitlines()[1:]))

    assert row[7] == "15/01/2024, 3:05"


def test_round_trip_into_empty_store(store, tmp_path):
    add_location(store, 'Joe\'s "Bar"', 52.3731, 4.8922, description="drinks, snacks", favorite=True,
                 street="Damrak", place="Amsterdam, North Holland")
    add_location(store, "Harbour", -33.8568, 151.2153)
    text = csv_io.export_csv(store)

    target = LocationStore(tmp_path / "other.json")
    report = csv_io.import_csv(target, text)

    assert report.imported == 2
    assert report.duplicates == 0
    assert report.errors == []
    assert report.message == "2 locations imported successfully"
    by_name = {loc.name: loc for loc in target.locations.values()}
    bar = by_name['Joe\'s "Bar"']
    assert bar.description == "drinks, snacks"
    assert bar.is_favorite
    assert bar.created_at == datetime(2024, 1, 15, 12, 30, tzinfo=timezone.utc)
    entry = target.entry_for(bar)
    assert entry.latitude == 52.3731
    assert entry.longitude == 4.8922
    assert entry.street == "Damrak"
    assert entry.place == "Amsterdam, North Holland"
    assert target.entry_for(by_name["Harbour"]).street is None
    assert (tmp_path / "other.json").exists()


def test_reimport_is_idempotent(store):
    add_location(store, "Dam", 52.3731, 4.8922)
    add_location(store, "Harbour", -33.8568, 151.2153)
    text = csv_io.export_csv(store)

    report = csv_io.import_csv(store, text)

    assert report.imported == 0
    assert report.duplicates == 2
    assert len(store.locations) == 2
    assert report.message == "0 locations imported, 2 duplicates skipped"


def test_duplicate_tolerance(store):
    add_location(store, "Cafe", 52.0, 4.0)
    text = "\n".join([
        HEADER,
        '"Cafe","","","","52.00005","4.0","false","15/01/2024, 13:30",""',
        '"Cafe","","","","52.0002","4.0","false","15/01/2024, 13:30",""',
        '"cafe","","","","52.0","4.0","false","15/01/2024, 13:30",""',
    ])

    report = csv_io.import_csv(store, text)

    assert report.duplicates == 1
    assert report.imported == 2


def test_duplicates_within_same_file(store):
    row = '"Cafe","","","","52.0","4.0","false","15/01/2024, 13:30",""'

    report = csv_io.import_csv(store, "\n".join([HEADER, row, row]))

    assert report.imported == 1
    assert report.duplicates == 1


def test_missing_timestamp_falls_back_to_created_date(store):
    text = HEADER + '\n"Cafe","","","","52.0","4.0","false","15/01/2024, 13:30",""\n'

    csv_io.import_csv(store, text)

    location = next(iter(store.locations.values()))
    assert store.entry_for(location).timestamp == location.created_at


def test_row_errors_are_reported_and_skipped(store):
    text = "\n".join([
        HEADER,
        '"Bad lat","","","","north","4.0","false","15/01/2024, 13:30",""',
        '"Bad fav","","","","52.0","4.0","yes","15/01/2024, 13:30",""',
        '"Short","","",""',
        '"Bad date","","","","52.0","4.0","false","2024-01-15",""',
        '"Off globe","","","","95.0","4.0","false","15/01/2024, 13:30",""',
        '"Upper case","","","","52.0","4.0","TRUE","15/01/2024, 13:30",""',
        '"Fine","","","","52.5","4.5","false","15/01/2024, 13:30",""',
    ])

    report = csv_io.import_csv(store, text)

    assert report.imported == 1
    assert report.errors == [
        "Row 2: Invalid latitude",
        "Row 3: Invalid favorite status",
        "Row 4: The file format is invalid",
        "Row 5: Invalid created date",
        "Row 6: Invalid coordinates",
        "Row 7: Invalid favorite status",
    ]
    assert report.message.startswith("Imported 1 locations with 6 errors:\n")
    assert [loc.name for loc in store.locations.values()] == ["Fine"]


def test_blank_lines_are_skipped(store):
    text = HEADER + '\n\n"Cafe","","","","52.0","4.0","false","15/01/2024, 13:30",""\n\n'

    report = csv_io.import_csv(store, text)

    assert report.imported == 1
    assert report.errors == []


@pytest.mark.parametrize("text", ["", HEADER, HEADER + "\n"])
def test_empty_file(store, text):
    with pytest.raises(EmptyFile):
        csv_io.import_csv(store, text)


def test_file_helpers(store, tmp_path):
    add_location(store, "Dam", 52.3731, 4.8922)
    path = tmp_path / "export.csv"

    assert csv_io.export_to_file(store, path) == 1

    target = LocationStore(tmp_path / "target.json")
    report = csv_io.import_from_file(target, path)
    assert report.imported == 1


def test_import_from_missing_file(store, tmp_path):
    with pytest.raises(StoreError):
        csv_io.import_from_file(store, tmp_path / "missing.csv")


def test_is_duplicate_requires_exact_name(store):
    add_location(store, "Cafe", 52.0, 4.0)

    assert csv_io.is_duplicate(store, "Cafe", 52.0, 4.0)
    assert not csv_io.is_duplicate(store, "Cafe ", 52.0, 4.0)
    assert not csv_io.is_duplicate(store, "Cafe", 52.0, 4.001)
    assert csv_io.is_duplicate(store, "Cafe", 52.0, 4.001, tolerance=0.01)


def test_round_trip_keeps_multi_line_description(store, tmp_path):
    add_location(store, "Dam", 52.3731, 4.8922, description="line one\nline two")
    add_location(store, "Harbour", -33.8568, 151.2153, description="ferry\r\nwharf 5")
    text = csv_io.export_csv(store)

    target = LocationStore(tmp_path / "other.json")
    report = csv_io.import_csv(target, text)

    assert report.imported == 2
    assert report.errors == []
    descriptions = {loc.name: loc.description for loc in target.locations.values()}
    assert descriptions == {"Dam": "line one\nline two", "Harbour": "ferry\r\nwharf 5"}

    assert csv_io.import_csv(target, text).duplicates == 2


def test_row_numbers_follow_multi_line_records(store):
    text = "\n".join([
        HEADER,
        '"Dam","first\nsecond","","","52.0","4.0","false","15/01/2024, 13:30",""',
        '"Bad lat","","","","north","4.0","false","15/01/2024, 13:30",""',
    ])

    report = csv_io.import_csv(store, text)

    assert report.imported == 1
    assert report.errors == ["Row 4: Invalid latitude"]
