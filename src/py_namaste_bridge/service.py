# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from rich.console import Console

from . import fhir
from .config import settings
from .exceptions import DuplicateCodeError, InvalidInputError, NotFoundError
from .importer import NamasteImporter
from .models import (
    ICD11, NAMASTE, NAMASTE_SUBSYSTEMS, TM2,
    AnyCode, AuditReport, CsvValidation, EnrichedMapping, IcdCode, ImportReport, ImportRowError,
    NamasteCode, SearchActivity, SearchResults,
)
from .repository import TerminologyRepository
from .resolver import MappingResolver
from .search import SearchAggregator
from .seed import load_demo_data

console = Console(stderr=True)

# ConceptMaps included in the terminology bundle, in bundle order
BUNDLE_CONCEPT_MAPS = [(NAMASTE, ICD11), (NAMASTE, TM2), (TM2, ICD11)]


def build_repository(seed: Optional[bool] = None, store_path: Optional[str] = None) -> TerminologyRepository:
    """
    Entry point function to construct a repository. An existing snapshot at `store_path`
    (default: `settings.store_path`) is loaded as is. Otherwise the repository starts empty
    and is loaded with the demonstration dataset unless disabled by argument or by `seed_demo_data`.
    """
    store_path = settings.store_path if store_path is None else store_path
    if store_path and Path(store_path).is_file():
        console.log(f"Loading terminology snapshot from {store_path}")
        return TerminologyRepository.load(store_path)

    repository = TerminologyRepository()
    if settings.seed_demo_data if seed is None else seed:
        load_demo_data(repository)
    return repository


class TerminologyService:
    """
    Orchestrates the repository, resolver, search aggregator, CSV importer and
    FHIR generators behind a single entry point used by the CLI.
    """

    def __init__(
        self,
        repository: TerminologyRepository,
        importer: Optional[NamasteImporter] = None,
    ):
        self.repository = repository
        self.resolver = MappingResolver(repository)
        self.search = SearchAggregator(repository)
        self.importer = importer or NamasteImporter()

    # --- Lookup ---

    def search_all(self, query: str) -> SearchResults:
        return self.search.search_all(query)

    def recent_activity(self, limit: Optional[int] = None) -> List[SearchActivity]:
        return self.search.recent_activity(limit)

    def get_code_by_code(self, system: str, code: str) -> AnyCode:
        system = fhir.normalize_system(system)
        record = self.repository.get_by_code(system, code)
        if record is None:
            raise NotFoundError(system, code)
        return record

    def get_codes_by_system(self, system: str) -> List[NamasteCode]:
        system = system.upper()
        if system not in NAMASTE_SUBSYSTEMS:
            raise InvalidInputError(f"System must be one of: {', '.join(NAMASTE_SUBSYSTEMS)}")
        return self.repository.get_by_system(system)

    def get_hierarchy_roots(self) -> List[IcdCode]:
        return self.repository.get_hierarchy_roots()

    def get_by_chapter(self, chapter: str) -> List[IcdCode]:
        return self.repository.get_by_chapter(chapter)

    # --- Mapping ---

    def resolve_mappings(self, system: str, code: str) -> List[EnrichedMapping]:
        return self.resolver.resolve_mappings_for_code(fhir.normalize_system(system), code)

    def translate(self, source_system: str, source_code: str, target_system: str, enriched: bool = False):
        source_system = fhir.normalize_system(source_system)
        target_system = fhir.normalize_system(target_system)
        if enriched:
            return self.resolver.translate_code_enriched(source_system, source_code, target_system)
        return self.resolver.translate_code(source_system, source_code, target_system)

    def check_mappings(self) -> Dict[str, AuditReport]:
        return {
            "one_to_one": self.repository.validate_one_to_one_mappings(),
            "hierarchy": self.repository.validate_hierarchy(),
        }

    # --- CSV Import ---

    def validate_csv(self, content: str) -> CsvValidation:
        """
        Runs an import without storing anything. The header is checked first and a
        missing required column ends validation before any row is read.
        """
        structure = self.importer.validate_csv_structure(content)
        if not structure.valid:
            return CsvValidation(
                errors=[ImportRowError(row=0, error=error) for error in structure.errors],
                warnings=structure.warnings,
            )

        result = self.importer.import_from_csv(content, validate_only=True)
        return CsvValidation(**result.model_dump(), valid=result.success, warnings=structure.warnings)

    def import_csv(self, content: str, validate_only: bool = False) -> ImportReport:
        """
        Validates a CSV and, only when every row is valid, stores its codes and mappings.
        A code the repository refuses (e.g. a duplicate) is reported against its row and
        skipped along with that row's mappings. Other rows are still stored.
        """
        console.log("Starting NAMASTE CSV import...")
        result = self.importer.import_from_csv(content, validate_only=validate_only)
        report = ImportReport(**result.model_dump())

        if validate_only or not result.success:
            if not result.success:
                console.log("[yellow]Import has invalid rows; nothing was stored.[/yellow]")
            return report

        for imported in result.rows:
            try:
                self.repository.put_code(NAMASTE, imported.code)
            except DuplicateCodeError as e:
                console.log(f"[yellow]Row {imported.row}: {e}[/yellow]")
                report.errors.append(ImportRowError(row=imported.row, error=str(e), data={"code": imported.code.code}))
                continue
            report.codes_imported += 1
            for mapping in imported.mappings:
                self.repository.put_mapping(mapping)
                report.mappings_created += 1

        report.success = not report.errors
        console.log(
            f"[green]Stored {report.codes_imported} codes and {report.mappings_created} mappings.[/green]"
        )
        return report

    def persist(self) -> Optional[Path]:
        """Saves the repository to `settings.store_path`; does nothing when that is empty."""
        if not settings.store_path:
            return None
        return self.repository.save(settings.store_path)

    def csv_template(self) -> str:
        return self.importer.generate_template()

    # --- FHIR ---

    def generate_code_system(self, system: Optional[str] = None) -> Dict[str, Any]:
        """The NAMASTE CodeSystem for every stored code, or only for one tradition."""
        codes = self.get_codes_by_system(system) if system else self.repository.list_codes(NAMASTE)
        return fhir.generate_code_system(codes, version=settings.fhir_version)

    def generate_concept_map(self, source_system: str, target_system: str) -> Dict[str, Any]:
        source_system = fhir.normalize_system(source_system)
        target_system = fhir.normalize_system(target_system)
        return fhir.generate_concept_map(
            self.repository.mappings_between_systems(source_system, target_system),
            source_system,
            target_system,
            version=settings.fhir_version,
            publisher=settings.fhir_publisher,
        )

    def generate_condition(
        self,
        patient_reference: str,
        primary_code,
        secondary_codes: Optional[Iterable] = None,
        options=None,
    ) -> Dict[str, Any]:
        return fhir.generate_condition(
            patient_reference, primary_code, secondary_codes, options, release_id=settings.who_release_id
        )

    def generate_bundle(self, resources: Sequence[Dict[str, Any]], bundle_type: str = "collection") -> Dict[str, Any]:
        return fhir.generate_bundle(resources, bundle_type)

    def terminology_bundle(self) -> Dict[str, Any]:
        """
        The NAMASTE CodeSystem followed by each ConceptMap that has at least one mapping.
        """
        resources = [self.generate_code_system()]
        for source_system, target_system in BUNDLE_CONCEPT_MAPS:
            if self.repository.mappings_between_systems(source_system, target_system):
                resources.append(self.generate_concept_map(source_system, target_system))
        return fhir.generate_bundle(resources, "collection")
