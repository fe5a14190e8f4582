"""Small persisted key-value store for user preferences."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .errors import StoreError

logger = logging.getLogger(__name__)


def atomic_write_json(out_path: Path, data: Any) -> None:
    """Atomically write JSON to file to avoid corruption."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = out_path.with_suffix(out_path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, out_path)


class Preferences:
    """Preferences backed by a JSON file, written through on every change."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._values: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read preferences {self.path}: {e}") from e
        if isinstance(data, dict):
            self._values = data
        else:
            logger.warning("Preferences file %s is not an object; ignoring", self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return bool(self._values.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        atomic_write_json(self.path, self._values)

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            atomic_write_json(self.path, self._values)

    def items(self) -> Dict[str, Any]:
        return dict(sorted(self._values.items()))
