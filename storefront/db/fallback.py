# storefront/db/fallback.py
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict

from storefront.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """A single JSON document on local disk, used as the fallback store.

    The file is created with ``default`` on first access. ``update`` runs a
    read-modify-write under a process-local lock and replaces the file
    atomically. A file that cannot be parsed is left untouched for the
    operator and reported as ``UpstreamUnavailable``.
    """

    def __init__(self, path, default: Dict[str, Any]):
        self.path = Path(path)
        self._default = default
        self._lock = threading.Lock()

    def _ensure(self):
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write(self._default)

    def _write(self, document: Dict[str, Any]):
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def _load(self) -> Dict[str, Any]:
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Fallback store %s is unreadable: %s", self.path, e)
            raise UpstreamUnavailable("Fallback store is unreadable") from e
        if not isinstance(document, dict) or any(k not in document for k in self._default):
            logger.error("Fallback store %s has an unexpected shape", self.path)
            raise UpstreamUnavailable("Fallback store is unreadable")
        return document

    def read(self) -> Dict[str, Any]:
        with self._lock:
            self._ensure()
            return self._load()

    def update(self, mutate: Callable[[Dict[str, Any]], Any]) -> Any:
        with self._lock:
            self._ensure()
            document = self._load()
            result = mutate(document)
            self._write(document)
            return result
