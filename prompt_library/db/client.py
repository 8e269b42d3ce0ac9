"""Whole-document JSON persistence for the library stores."""

from __future__ import annotations

import json
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog

from prompt_library.config import get_settings

logger = structlog.get_logger()

SCHEMA_VERSION = 0


class DocumentStore:
    """Loads and saves named JSON documents, one file per namespace.

    Each document is read whole on boot and rewritten whole on every save.
    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves a half-written file.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def load(self, name: str) -> dict[str, Any] | None:
        """Return the ``state`` of document *name*, or None if it does not exist."""
        path = self._path(name)
        if not path.exists():
            return None
        envelope = json.loads(path.read_text(encoding="utf-8"))
        if envelope.get("version", SCHEMA_VERSION) != SCHEMA_VERSION:
            logger.warning(
                "documents.version_mismatch",
                name=name,
                found=envelope.get("version"),
                expected=SCHEMA_VERSION,
            )
        return envelope.get("state")

    def save(self, name: str, state: dict[str, Any]) -> None:
        """Atomically replace document *name* with *state*."""
        self.root.mkdir(parents=True, exist_ok=True)
        envelope = {"name": name, "version": SCHEMA_VERSION, "state": state}
        fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(envelope, fh, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path(name))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug("documents.saved", name=name)


@lru_cache
def get_document_store() -> DocumentStore:
    """Get the cached document store rooted at the configured data directory."""
    settings = get_settings()
    store = DocumentStore(settings.data_path)
    logger.info("documents.opened", root=str(store.root))
    return store
