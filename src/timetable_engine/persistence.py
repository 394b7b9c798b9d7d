"""Persistence of generated timetable versions."""

import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from .exceptions import PersistenceFailure
from .models import Assignment

logger = logging.getLogger(__name__)


class PersistenceWriter(ABC):
    """Base class for timetable version writers.

    A version is written as create -> append (one or more times) -> finalize.
    Nothing may be visible to readers before finalize; discard drops a
    version that failed part-way.
    """

    @abstractmethod
    def create_timetable_version(self, school_id: str, metadata: dict[str, Any]) -> str:
        """Open a new version and return its id."""
        pass

    @abstractmethod
    def append_assignments(self, version_id: str, assignments: list[Assignment]) -> None:
        """Add assignments to an open version."""
        pass

    def finalize_version(self, version_id: str) -> None:
        """Publish an open version."""
        pass

    def discard_version(self, version_id: str) -> None:
        """Drop an open version."""
        pass


def new_version_id(school_id: str) -> str:
    return f"{school_id}-{datetime.now().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:8]}"


class InMemoryWriter(PersistenceWriter):
    """Thread-safe writer keeping versions in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._staged: dict[str, dict[str, Any]] = {}
        self._published: dict[str, dict[str, Any]] = {}

    def create_timetable_version(self, school_id: str, metadata: dict[str, Any]) -> str:
        version_id = new_version_id(school_id)
        with self._lock:
            self._staged[version_id] = {
                "version_id": version_id,
                "school_id": school_id,
                "metadata": dict(metadata),
                "assignments": [],
            }
        return version_id

    def append_assignments(self, version_id: str, assignments: list[Assignment]) -> None:
        with self._lock:
            if version_id not in self._staged:
                raise KeyError(f"Version '{version_id}' is not open")
            self._staged[version_id]["assignments"].extend(assignments)

    def finalize_version(self, version_id: str) -> None:
        with self._lock:
            self._published[version_id] = self._staged.pop(version_id)

    def discard_version(self, version_id: str) -> None:
        with self._lock:
            self._staged.pop(version_id, None)

    def get_version(self, version_id: str) -> dict[str, Any] | None:
        """A published version, or None."""
        with self._lock:
            version = self._published.get(version_id)
            if version is None:
                return None
            return {**version, "assignments": list(version["assignments"])}

    def list_versions(self, school_id: str | None = None) -> list[str]:
        with self._lock:
            return [
                vid
                for vid, version in self._published.items()
                if school_id is None or version["school_id"] == school_id
            ]


class JsonDirectoryWriter(PersistenceWriter):
    """Writes each version to ``<root>/<school_id>/<version_id>.json``.

    Assignments are buffered until finalize, which writes a temporary file
    and moves it into place with ``os.replace``.
    """

    def __init__(self, root: str | Path, indent: int = 2):
        self.root = Path(root)
        self.indent = indent
        self._lock = threading.Lock()
        self._open: dict[str, dict[str, Any]] = {}

    def version_path(self, school_id: str, version_id: str) -> Path:
        return self.root / school_id / f"{version_id}.json"

    def create_timetable_version(self, school_id: str, metadata: dict[str, Any]) -> str:
        version_id = new_version_id(school_id)
        with self._lock:
            self._open[version_id] = {
                "version_id": version_id,
                "school_id": school_id,
                "metadata": dict(metadata),
                "assignments": [],
            }
        return version_id

    def append_assignments(self, version_id: str, assignments: list[Assignment]) -> None:
        with self._lock:
            if version_id not in self._open:
                raise KeyError(f"Version '{version_id}' is not open")
            self._open[version_id]["assignments"].extend(a.to_dict() for a in assignments)

    def finalize_version(self, version_id: str) -> None:
        with self._lock:
            data = self._open.pop(version_id)
        path = self.version_path(data["school_id"], version_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=self.indent, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info(f"Wrote version {version_id} to {path}")

    def discard_version(self, version_id: str) -> None:
        with self._lock:
            self._open.pop(version_id, None)

    def load_version(self, school_id: str, version_id: str) -> dict[str, Any]:
        """Read a published version back, with assignments as model objects."""
        with open(self.version_path(school_id, version_id), encoding="utf-8") as f:
            data = json.load(f)
        data["assignments"] = [Assignment.from_dict(a) for a in data["assignments"]]
        return data


def persist_version(
    writer: PersistenceWriter,
    school_id: str,
    metadata: dict[str, Any],
    assignments: list[Assignment],
) -> str:
    """Write one complete version or nothing.

    Returns:
        The new version id

    Raises:
        PersistenceFailure: If any step fails; the version is discarded
    """
    version_id = None
    try:
        version_id = writer.create_timetable_version(school_id, metadata)
        writer.append_assignments(version_id, assignments)
        writer.finalize_version(version_id)
    except Exception as e:
        if version_id is not None:
            try:
                writer.discard_version(version_id)
            except Exception:
                logger.exception(f"Could not discard failed version {version_id}")
        raise PersistenceFailure(str(e) or type(e).__name__, version_id) from e
    return version_id
