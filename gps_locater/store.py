"""Storage for saved locations - a single JSON file holding records and entries."""

import json
import logging
import shutil
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as ModelValidationError

from .errors import StoreError, ValidationError
from .models import LocationEntry, SavedLocation
from .preferences import atomic_write_json

logger = logging.getLogger(__name__)

IdLike = Union[str, uuid.UUID]


class LocationStore:
    """Handle loading and saving saved locations and their entries.

    Each SavedLocation owns exactly one LocationEntry. Deleting a record
    deletes its entry; `sweep_orphans` removes entries without an owner and
    records whose entry went missing.
    """

    def __init__(self, path: Path):
        """Initialize storage with path to the JSON file.

        Args:
            path: File to read from and write to; created on first save.
        """
        self.path = Path(path)
        self.locations: Dict[uuid.UUID, SavedLocation] = {}
        self.entries: Dict[uuid.UUID, LocationEntry] = {}

    def load(self) -> None:
        """Load records from disk. A missing file means an empty store."""
        self.locations.clear()
        self.entries.clear()
        if not self.path.exists():
            logger.info("No location store at %s, starting empty", self.path)
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            for item in data.get("entries", []):
                entry = LocationEntry.model_validate(item)
                self.entries[entry.id] = entry
            for item in data.get("locations", []):
                location = SavedLocation.model_validate(item)
                self.locations[location.id] = location
        except (OSError, ValueError, AttributeError, ModelValidationError) as e:
            raise StoreError(f"Could not load {self.path}: {e}") from e
        logger.info("Loaded %d saved locations from %s", len(self.locations), self.path)

    def save(self) -> None:
        """Write all records, keeping a backup of the previous file."""
        try:
            if self.path.exists():
                shutil.copy2(self.path, self.path.with_suffix(self.path.suffix + ".backup"))
            data = {
                "locations": [loc.model_dump(mode="json") for loc in self.locations.values()],
                "entries": [entry.model_dump(mode="json") for entry in self.entries.values()],
            }
            atomic_write_json(self.path, data)
        except OSError as e:
            raise StoreError(f"Could not save {self.path}: {e}") from e

    # Create ---------------------------------------------------------------
    def create_saved_location(
        self,
        name: str,
        description: str,
        entry: Optional[LocationEntry],
        is_favorite: bool = False,
    ) -> SavedLocation:
        """Validate user input and add a new saved location.

        Raises:
            ValidationError: missing entry, invalid coordinates or empty name.
        """
        name = (name or "").strip()
        description = (description or "").strip()
        if entry is None:
            raise ValidationError("Location data is not available")
        if not entry.has_valid_coordinates():
            raise ValidationError("Invalid location coordinates")
        if not name:
            raise ValidationError("Please enter a location name")

        location = SavedLocation(
            name=name,
            description=description,
            location_entry_id=entry.id,
            is_favorite=is_favorite,
        )
        self.add(location, entry)
        return location

    def add(self, location: SavedLocation, entry: LocationEntry) -> None:
        if location.location_entry_id != entry.id:
            raise StoreError("Saved location does not reference the given entry")
        self.entries[entry.id] = entry
        self.locations[location.id] = location

    # Read -----------------------------------------------------------------
    def get(self, location_id: IdLike) -> Optional[SavedLocation]:
        return self.locations.get(_as_uuid(location_id))

    def resolve(self, id_or_prefix: str) -> SavedLocation:
        """Find a saved location by full id or unique id prefix."""
        text = id_or_prefix.strip().lower()
        matches = [loc for loc in self.locations.values() if str(loc.id).startswith(text)]
        if not matches:
            raise StoreError(f"No saved location matches '{id_or_prefix}'")
        if len(matches) > 1:
            raise StoreError(f"'{id_or_prefix}' matches {len(matches)} locations; use a longer id")
        return matches[0]

    def entry_for(self, location: SavedLocation) -> Optional[LocationEntry]:
        return self.entries.get(location.location_entry_id)

    def list(self, favorites_only: bool = False) -> List[SavedLocation]:
        """Saved locations, newest first."""
        locations = sorted(self.locations.values(), key=lambda loc: loc.created_at, reverse=True)
        if favorites_only:
            locations = [loc for loc in locations if loc.is_favorite]
        return locations

    def with_entries(self, favorites_only: bool = False) -> List[Tuple[SavedLocation, Optional[LocationEntry]]]:
        return [(loc, self.entry_for(loc)) for loc in self.list(favorites_only)]

    def find_by_name(self, name: str) -> List[SavedLocation]:
        return [loc for loc in self.locations.values() if loc.name == name]

    # Update ---------------------------------------------------------------
    def update(
        self,
        location_id: IdLike,
        *,
        description: Optional[str] = None,
        is_favorite: Optional[bool] = None,
    ) -> SavedLocation:
        location = self._require(location_id)
        if description is not None:
            location.description = description.strip()
        if is_favorite is not None:
            location.is_favorite = is_favorite
        return location

    def toggle_favorite(self, location_id: IdLike) -> SavedLocation:
        location = self._require(location_id)
        location.is_favorite = not location.is_favorite
        return location

    # Delete ---------------------------------------------------------------
    def delete(self, location_id: IdLike) -> SavedLocation:
        """Delete a saved location and the entry it owns."""
        location = self._require(location_id)
        del self.locations[location.id]
        self.entries.pop(location.location_entry_id, None)
        return location

    def delete_all(self) -> int:
        count = len(self.locations)
        self.locations.clear()
        self.entries.clear()
        return count

    def sweep_orphans(self) -> Tuple[int, int]:
        """Remove records without entries and entries without records.

        Returns:
            Tuple of (records_removed, entries_removed)
        """
        orphan_records = [loc.id for loc in self.locations.values() if loc.location_entry_id not in self.entries]
        for location_id in orphan_records:
            del self.locations[location_id]

        owned = {loc.location_entry_id for loc in self.locations.values()}
        orphan_entries = [entry_id for entry_id in self.entries if entry_id not in owned]
        for entry_id in orphan_entries:
            del self.entries[entry_id]

        if orphan_records or orphan_entries:
            logger.info(
                "Swept %d orphaned locations and %d orphaned entries", len(orphan_records), len(orphan_entries)
            )
        return len(orphan_records), len(orphan_entries)

    def get_stats(self) -> Dict[str, int]:
        return {
            "total_locations": len(self.locations),
            "favorites": sum(1 for loc in self.locations.values() if loc.is_favorite),
            "entries": len(self.entries),
        }

    def _require(self, location_id: IdLike) -> SavedLocation:
        location = self.get(location_id)
        if location is None:
            raise StoreError(f"Saved location {location_id} not found")
        return location


def _as_uuid(value: IdLike) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
