"""JSON file persistence for identity records and the local context cache."""

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import BaseModel, ValidationError

from .models import IDENTITY_VERSION, ContextEvent, ContextStore, IdentityRecord, PageVisit, utcnow

logger = structlog.get_logger()


class PersistenceError(Exception):
    """A durable write failed."""


def write_json_atomic(path: Path, model: BaseModel) -> Path:
    """Serialize a model to path via a temp file + rename.

    Raises:
        PersistenceError: on any filesystem failure
    """
    tmp = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(model.model_dump_json(indent=2))
        os.replace(tmp, path)
    except OSError as e:
        if tmp and os.path.exists(tmp):
            os.unlink(tmp)
        raise PersistenceError(f"Failed to write {path}: {e}") from e
    return path


def read_json(path: Path) -> dict | None:
    """Read a JSON object from path; None when missing or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("json_read_failed", path=str(path), error=str(e))
        return None
    return data if isinstance(data, dict) else None


class IdentityStorage:
    """identity.json CRUD."""

    def __init__(self, path: str | Path = "~/.persona/identity.json"):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> IdentityRecord | None:
        data = read_json(self.path)
        if not data or data.get("version") != IDENTITY_VERSION:
            return None
        try:
            return IdentityRecord.model_validate(data)
        except ValidationError as e:
            logger.warning("identity_invalid", path=str(self.path), error=str(e))
            return None

    def save(self, identity: IdentityRecord) -> Path:
        identity.updated_at = utcnow()
        return write_json_atomic(self.path, identity)


class ContextStorage:
    """Local cache of context events and page visits (context.json)."""

    def __init__(self, path: str | Path = "~/.persona/context.json"):
        self.path = Path(path).expanduser()

    def load(self) -> ContextStore:
        data = read_json(self.path)
        if not data:
            return ContextStore()
        try:
            return ContextStore.model_validate(data)
        except ValidationError as e:
            logger.warning("context_store_invalid", path=str(self.path), error=str(e))
            return ContextStore()

    def save(self, store: ContextStore) -> Path:
        store.last_modified = utcnow()
        return write_json_atomic(self.path, store)

    def add_event(self, event: ContextEvent) -> ContextEvent:
        store = self.load()
        store.events.append(event)
        self.save(store)
        return event

    def add_page(self, page: PageVisit) -> PageVisit:
        store = self.load()
        store.pages.append(page)
        self.save(store)
        return page
