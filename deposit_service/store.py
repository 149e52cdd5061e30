import json
from typing import Optional

from loguru import logger

from .errors import StoreError
from .models import Snapshot


class Store:
    """Load/save the whole snapshot. Swap in a locked backend here if needed."""

    def load(self) -> Snapshot:
        raise NotImplementedError

    def save(self, snapshot: Snapshot) -> None:
        raise NotImplementedError


def _parse(raw: str) -> Snapshot:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("snapshot must be a JSON object")
    if not data.get("users"):
        data["users"] = {}
    if not data.get("sessions"):
        data["sessions"] = {}
    return Snapshot.model_validate(data)


def _dump(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.model_dump(mode="json"), indent=2)


class JsonFileStore(Store):
    # No file lock: concurrent load/save cycles can lose updates.

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Snapshot:
        try:
            with open(self.path, encoding="utf-8") as f:
                return _parse(f.read())
        except FileNotFoundError:
            return Snapshot()
        except (OSError, ValueError) as e:
            logger.warning(f"store: cannot read {self.path} ({e}), starting empty")
            return Snapshot()

    def save(self, snapshot: Snapshot) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(_dump(snapshot))
        except OSError as e:
            raise StoreError(f"cannot write {self.path}: {e}") from e


class MemoryStore(Store):
    """Keeps the serialized snapshot in memory, so loads never share objects."""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw

    def load(self) -> Snapshot:
        if self.raw is None:
            return Snapshot()
        try:
            return _parse(self.raw)
        except ValueError:
            return Snapshot()

    def save(self, snapshot: Snapshot) -> None:
        self.raw = _dump(snapshot)
