# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
"""
In-memory terminology store for ICD-11, NAMASTE and TM2 codes and the
directional mappings between them.

Records are append-only. Every read hands back a deep copy so callers can never
mutate stored state, and writes are serialized behind a single lock.
"""
import json
import threading
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Type

from rich.console import Console

from .config import settings
from .exceptions import DuplicateCodeError, MalformedInputError
from .models import (
    ICD11, NAMASTE, TM2, TERMINOLOGY_SYSTEMS,
    AnyCode, AuditReport, CodeMapping, IcdCode, NamasteCode, SearchActivity, Tm2Code,
)

console = Console(stderr=True)

MODEL_FOR_SYSTEM: Dict[str, Type[AnyCode]] = {
    ICD11: IcdCode,
    NAMASTE: NamasteCode,
    TM2: Tm2Code,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TerminologyRepository:
    """Holds every terminology record and mapping, keyed by id with a per-system code index."""

    def __init__(self, reject_duplicates: Optional[bool] = None):
        self.reject_duplicates = settings.reject_duplicate_codes if reject_duplicates is None else reject_duplicates
        self._lock = threading.Lock()
        self._codes: Dict[str, Dict[str, AnyCode]] = {system: {} for system in TERMINOLOGY_SYSTEMS}
        self._code_index: Dict[str, Dict[str, str]] = {system: {} for system in TERMINOLOGY_SYSTEMS}
        self._mappings: Dict[str, CodeMapping] = {}
        self._mappings_by_source: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        self._search_activity: List[SearchActivity] = []

    @staticmethod
    def _check_system(system: str) -> str:
        if system not in MODEL_FOR_SYSTEM:
            raise ValueError(
                f"Unknown terminology system '{system}'. Expected one of: {', '.join(TERMINOLOGY_SYSTEMS)}"
            )
        return system

    # --- Codes ---

    def put_code(self, system: str, record: AnyCode) -> AnyCode:
        """
        Stores a code under its system, assigning `id` and `created_at` when absent.
        Raises DuplicateCodeError if the code already exists and duplicates are rejected;
        otherwise the new record replaces the previous one.
        """
        model = MODEL_FOR_SYSTEM[self._check_system(system)]
        if not isinstance(record, model):
            raise TypeError(f"{system} records must be {model.__name__}, got {type(record).__name__}")

        stored = record.model_copy(deep=True)
        if stored.id is None:
            stored.id = str(uuid.uuid4())
        if stored.created_at is None:
            stored.created_at = _now()

        with self._lock:
            existing_id = self._code_index[system].get(stored.code)
            if existing_id is not None:
                if self.reject_duplicates:
                    raise DuplicateCodeError(system, stored.code)
                console.log(f"[yellow]Replacing existing {system} code '{stored.code}'.[/yellow]")
                del self._codes[system][existing_id]
            self._codes[system][stored.id] = stored
            self._code_index[system][stored.code] = stored.id
        return stored.model_copy(deep=True)

    def get_by_id(self, system: str, record_id: str) -> Optional[AnyCode]:
        with self._lock:
            record = self._codes[self._check_system(system)].get(record_id)
            return record.model_copy(deep=True) if record else None

    def get_by_code(self, system: str, code: str) -> Optional[AnyCode]:
        with self._lock:
            record_id = self._code_index[self._check_system(system)].get(code)
            if record_id is None:
                return None
            return self._codes[system][record_id].model_copy(deep=True)

    def list_codes(self, system: str) -> List[AnyCode]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._codes[self._check_system(system)].values()]

    def count(self, system: str) -> int:
        with self._lock:
            return len(self._codes[self._check_system(system)])

    def get_by_system(self, system: str) -> List[NamasteCode]:
        """Returns NAMASTE codes belonging to one tradition (AYU, SID or UNA)."""
        with self._lock:
            return [r.model_copy(deep=True) for r in self._codes[NAMASTE].values() if r.system == system]

    def get_hierarchy_roots(self) -> List[IcdCode]:
        """Returns ICD codes without a parent."""
        with self._lock:
            return [r.model_copy(deep=True) for r in self._codes[ICD11].values() if not r.parent_code]

    def get_by_chapter(self, chapter: str) -> List[IcdCode]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._codes[ICD11].values() if r.chapter == chapter]

    def search_codes(self, system: str, query: str) -> List[AnyCode]:
        """Case-insensitive substring match on code, title or description."""
        term = query.lower()
        with self._lock:
            return [
                r.model_copy(deep=True)
                for r in self._codes[self._check_system(system)].values()
                if term in r.code.lower()
                or term in r.title.lower()
                or (r.description is not None and term in r.description.lower())
            ]

    # --- Mappings ---

    def put_mapping(self, mapping: CodeMapping) -> CodeMapping:
        stored = mapping.model_copy(deep=True)
        if stored.id is None:
            stored.id = str(uuid.uuid4())
        if stored.created_at is None:
            stored.created_at = _now()

        with self._lock:
            self._mappings[stored.id] = stored
            self._mappings_by_source[(stored.source_system, stored.source_code)].append(stored.id)
        return stored.model_copy(deep=True)

    def get_mapping(self, mapping_id: str) -> Optional[CodeMapping]:
        with self._lock:
            mapping = self._mappings.get(mapping_id)
            return mapping.model_copy(deep=True) if mapping else None

    def query_mappings(
        self, source_system: str, source_code: str, target_system: Optional[str] = None
    ) -> List[CodeMapping]:
        """Active mappings originating at (source_system, source_code), in insertion order."""
        with self._lock:
            ids = self._mappings_by_source.get((source_system, source_code), [])
            return [
                self._mappings[i].model_copy(deep=True)
                for i in ids
                if self._mappings[i].is_active
                and (target_system is None or self._mappings[i].target_system == target_system)
            ]

    def mappings_between_systems(self, source_system: str, target_system: str) -> List[CodeMapping]:
        with self._lock:
            return [
                m.model_copy(deep=True)
                for m in self._mappings.values()
                if m.is_active and m.source_system == source_system and m.target_system == target_system
            ]

    def all_mappings(self) -> List[CodeMapping]:
        """Every stored mapping, including inactive ones."""
        with self._lock:
            return [m.model_copy(deep=True) for m in self._mappings.values()]

    # --- Search activity ---

    def log_search_activity(self, query: str, result_count: int) -> SearchActivity:
        activity = SearchActivity(
            id=str(uuid.uuid4()), query=query, result_count=result_count, timestamp=_now()
        )
        with self._lock:
            self._search_activity.append(activity)
        return activity.model_copy()

    def recent_search_activity(self, limit: Optional[int] = None) -> List[SearchActivity]:
        """Newest first; ties keep the later insertion first."""
        limit = settings.recent_activity_limit if limit is None else limit
        with self._lock:
            newest_first = list(reversed(self._search_activity))
        newest_first.sort(key=lambda a: a.timestamp, reverse=True)
        return [a.model_copy() for a in newest_first[:limit]]

    # --- Integrity audits ---

    def validate_one_to_one_mappings(self) -> AuditReport:
        """Flags NAMASTE codes that have more than one active ICD-11 or TM2 target."""
        targets: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        with self._lock:
            for m in self._mappings.values():
                if m.source_system == NAMASTE and m.is_active and m.target_system in (ICD11, TM2):
                    targets[(m.source_code, m.target_system)].append(m.target_code)

        violations = [
            f"NAMASTE code '{source}' maps to multiple {target_system} codes: {', '.join(codes)}"
            for (source, target_system), codes in targets.items()
            if len(codes) > 1
        ]
        return AuditReport(is_valid=not violations, violations=violations)

    def validate_hierarchy(self) -> AuditReport:
        """Checks that ICD parent/child links agree in both directions and contain no cycle."""
        with self._lock:
            by_code = {r.code: r for r in self._codes[ICD11].values()}

        violations: List[str] = []
        for record in by_code.values():
            for child_code in record.children or []:
                child = by_code.get(child_code)
                if child is None:
                    violations.append(f"ICD code '{record.code}' lists unknown child '{child_code}'")
                elif child.parent_code != record.code:
                    violations.append(
                        f"ICD code '{record.code}' lists child '{child_code}' whose parent is '{child.parent_code}'"
                    )
            if record.parent_code:
                parent = by_code.get(record.parent_code)
                if parent is None:
                    violations.append(f"ICD code '{record.code}' has unknown parent '{record.parent_code}'")
                elif record.code not in (parent.children or []):
                    violations.append(
                        f"ICD code '{record.code}' names parent '{parent.code}' which does not list it as a child"
                    )

        reported = set()
        for start in by_code:
            seen = [start]
            current = by_code[start].parent_code
            while current in by_code:
                if current in seen:
                    cycle = frozenset(seen[seen.index(current):])
                    if cycle not in reported:
                        reported.add(cycle)
                        violations.append(f"ICD hierarchy cycle through: {' -> '.join(sorted(cycle))}")
                    break
                seen.append(current)
                current = by_code[current].parent_code

        return AuditReport(is_valid=not violations, violations=violations)

    # --- Snapshots ---

    def save(self, path) -> Path:
        """Writes every code, mapping and search activity entry to a JSON snapshot at `path`."""
        with self._lock:
            snapshot = {
                "codes": {
                    system: [r.model_dump(mode="json") for r in records.values()]
                    for system, records in self._codes.items()
                },
                "mappings": [m.model_dump(mode="json") for m in self._mappings.values()],
                "search_activity": [a.model_dump(mode="json") for a in self._search_activity],
            }
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
        console.log(f"[green]Saved terminology snapshot to {path}[/green]")
        return path

    @classmethod
    def load(cls, path, reject_duplicates: Optional[bool] = None) -> "TerminologyRepository":
        """Rebuilds a repository from a snapshot written by `save`, keeping ids and timestamps."""
        try:
            snapshot = json.loads(Path(path).read_text(encoding="utf-8"))
            repository = cls(reject_duplicates=reject_duplicates)
            for system, records in snapshot.get("codes", {}).items():
                model = MODEL_FOR_SYSTEM[repository._check_system(system)]
                for record in records:
                    repository.put_code(system, model.model_validate(record))
            for mapping in snapshot.get("mappings", []):
                repository.put_mapping(CodeMapping.model_validate(mapping))
            repository._search_activity.extend(
                SearchActivity.model_validate(a) for a in snapshot.get("search_activity", [])
            )
        except ValueError as e:
            raise MalformedInputError(f"Invalid terminology snapshot {path}: {e}") from e
        return repository
