# timetrack/database.py
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tsheet.config import get_storage_file
from tsheet.logging_config import get_store_logger

logger = get_store_logger()


class JsonSlot:
    """A durable slot holding one JSON document (the whole snapshot)."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else get_storage_file()

    def read(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None if the slot is empty or unreadable."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"{self.path} is empty or corrupted. Starting from a fresh snapshot.")
            return None
        if not isinstance(data, dict):
            logger.warning(f"{self.path} does not hold a JSON object. Starting from a fresh snapshot.")
            return None
        return data

    def write(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)

    def clear(self) -> None:
        if self.path.exists():
            os.remove(self.path)
