"""Dapp catalog document served by the proxy routes.

The JSON file is re-read whenever its modification time changes, so the
catalog can be edited without restarting the service.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class CatalogStore:
    """Hot-reloading view of a JSON document on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._mtime: Optional[int] = None
        self._document: Any = None

    def get(self) -> Any:
        """Return the current document, reloading it if the file changed."""
        try:
            mtime = self.path.stat().st_mtime_ns
        except FileNotFoundError:
            self._mtime = None
            self._document = None
            return {"error": "catalog.json not found"}
        except OSError as e:
            return {"error": "catalog.json read error", "details": str(e)}

        if mtime != self._mtime:
            self._document = self._load()
            self._mtime = mtime
        return self._document

    def _load(self) -> Any:
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Catalog read error ({self.path}): {e}")
            return {"error": "catalog.json read error", "details": str(e)}
        logger.info(f"Catalog loaded from {self.path}")
        return document
