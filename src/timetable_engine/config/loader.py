"""File-backed data source."""

import csv
import json
import logging
from pathlib import Path
from typing import Any

from ..exceptions import ConfigurationError
from .source import Row, Scope

logger = logging.getLogger(__name__)


class DirectorySource:
    """Data source reading CSV and JSON files from a directory tree.

    Each scope lives in ``<root>/<school_id>/<term_id>/``. Expected files:
    - teachers.json
    - classes.csv
    - subjects.csv
    - rooms.csv
    - availability.csv
    - teacher-subjects.csv
    - class-subjects.json
    - fixed-assignments.csv
    - settings.json (optional overrides of the generation config)

    Missing files yield no rows.
    """

    TEACHERS = "teachers.json"
    CLASSES = "classes.csv"
    SUBJECTS = "subjects.csv"
    ROOMS = "rooms.csv"
    AVAILABILITY = "availability.csv"
    TEACHER_SUBJECTS = "teacher-subjects.csv"
    CLASS_SUBJECTS = "class-subjects.json"
    FIXED_ASSIGNMENTS = "fixed-assignments.csv"
    SETTINGS = "settings.json"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def scope_dir(self, scope: Scope) -> Path:
        return self.root / scope.school_id / scope.term_id

    def _get_path(self, scope: Scope, filename: str) -> Path | None:
        """Get path to a scope file if it exists."""
        path = self.scope_dir(scope) / filename
        return path if path.exists() else None

    def _read_csv(self, scope: Scope, filename: str) -> list[Row]:
        path = self._get_path(scope, filename)
        if path is None:
            logger.debug(f"No {filename} for scope {scope}")
            return []
        with open(path, encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            return [
                {k.strip(): (v.strip() if isinstance(v, str) else v) for k, v in row.items() if k}
                for row in reader
            ]

    def _read_json(self, scope: Scope, filename: str) -> Any:
        path = self._get_path(scope, filename)
        if path is None:
            logger.debug(f"No {filename} for scope {scope}")
            return None
        with open(path, encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"malformed JSON: {e}", source=str(path)) from e

    def _read_json_rows(self, scope: Scope, filename: str) -> list[Row]:
        data = self._read_json(scope, filename)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ConfigurationError(
                "expected a list of objects", source=str(self.scope_dir(scope) / filename)
            )
        return data

    def list_teachers(self, scope: Scope) -> list[Row]:
        return self._read_json_rows(scope, self.TEACHERS)

    def list_classes(self, scope: Scope) -> list[Row]:
        return self._read_csv(scope, self.CLASSES)

    def list_subjects(self, scope: Scope) -> list[Row]:
        return self._read_csv(scope, self.SUBJECTS)

    def list_rooms(self, scope: Scope) -> list[Row]:
        return self._read_csv(scope, self.ROOMS)

    def list_availability(self, scope: Scope) -> list[Row]:
        return self._read_csv(scope, self.AVAILABILITY)

    def list_teacher_capabilities(self, scope: Scope) -> list[Row]:
        return self._read_csv(scope, self.TEACHER_SUBJECTS)

    def list_class_subject_requirements(self, scope: Scope) -> list[Row]:
        return self._read_json_rows(scope, self.CLASS_SUBJECTS)

    def list_fixed_assignments(self, scope: Scope) -> list[Row]:
        return self._read_csv(scope, self.FIXED_ASSIGNMENTS)

    def get_settings(self, scope: Scope) -> Row:
        """Per-scope setting overrides from settings.json."""
        data = self._read_json(scope, self.SETTINGS)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "expected an object", source=str(self.scope_dir(scope) / self.SETTINGS)
            )
        return data

    def list_scopes(self) -> list[Scope]:
        """All scopes present under the root directory."""
        scopes = []
        if not self.root.is_dir():
            return scopes
        for school_dir in sorted(p for p in self.root.iterdir() if p.is_dir()):
            for term_dir in sorted(p for p in school_dir.iterdir() if p.is_dir()):
                scopes.append(Scope(school_dir.name, term_dir.name))
        return scopes
