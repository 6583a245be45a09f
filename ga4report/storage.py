"""GA4 Reports: Document Storage Ports.

Both persisted documents (the consolidated store and the URL config) are
whole JSON files. Repositories talk to a storage port so tests can swap in
an in-memory document instead of touching the filesystem.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from ga4report.core.logging import get_logger

logger = get_logger("storage")


class DocumentStorage(Protocol):
    """Reads and writes one JSON document."""

    location: str

    def exists(self) -> bool: ...

    def read(self) -> Dict[str, Any]: ...

    def write(self, document: Dict[str, Any]) -> None: ...

    def stat(self) -> Dict[str, Any]: ...


class JsonFileStorage:
    """A JSON document on disk, rewritten whole on every write."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.location = str(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Dict[str, Any]:
        with self.path.open("r", encoding="utf-8") as fh:
            return json.load(fh)

    def write(self, document: Dict[str, Any]) -> None:
        """Write to a temp file next to the target, then rename into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.info(
            f"💾 Saved {self.path} ({self.path.stat().st_size / 1024:.2f} KB)",
            extra={"file": str(self.path)},
        )

    def stat(self) -> Dict[str, Any]:
        st = self.path.stat()
        return {
            "size_bytes": st.st_size,
            "last_modified": datetime.fromtimestamp(st.st_mtime, timezone.utc).isoformat(),
        }


class InMemoryStorage:
    """Storage port backed by a dict, for tests."""

    def __init__(self, document: Optional[Dict[str, Any]] = None, location: str = ":memory:"):
        self.location = location
        self._document = json.loads(json.dumps(document)) if document is not None else None
        self._last_modified: Optional[str] = None
        self.writes = 0

    def exists(self) -> bool:
        return self._document is not None

    def read(self) -> Dict[str, Any]:
        if self._document is None:
            raise FileNotFoundError(self.location)
        return json.loads(json.dumps(self._document))

    def write(self, document: Dict[str, Any]) -> None:
        # Detached copy; callers never share the stored dict
        self._document = json.loads(json.dumps(document))
        self._last_modified = datetime.now(timezone.utc).isoformat()
        self.writes += 1

    def stat(self) -> Dict[str, Any]:
        if self._document is None:
            raise FileNotFoundError(self.location)
        return {
            "size_bytes": len(json.dumps(self._document, indent=2).encode("utf-8")),
            "last_modified": self._last_modified,
        }
