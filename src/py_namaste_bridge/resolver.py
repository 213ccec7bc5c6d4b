# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from typing import List, Set, Tuple

from .models import CodeMapping, EnrichedMapping
from .repository import MODEL_FOR_SYSTEM, TerminologyRepository


class MappingResolver:
    """
    Translates codes across terminology systems and decorates the results
    with human-readable titles. Absence is never an error: unknown codes
    resolve to an empty list and unknown titles fall back to the bare code.
    """

    def __init__(self, repository: TerminologyRepository):
        self.repository = repository

    def title_for(self, system: str, code: str) -> str:
        """The stored title for (system, code), or the code itself if it cannot be found."""
        if system not in MODEL_FOR_SYSTEM:
            return code
        record = self.repository.get_by_code(system, code)
        return record.title if record else code

    def enrich(self, mapping: CodeMapping) -> EnrichedMapping:
        return EnrichedMapping(
            **mapping.model_dump(),
            source_title=self.title_for(mapping.source_system, mapping.source_code),
            target_title=self.title_for(mapping.target_system, mapping.target_code),
        )

    def resolve_mappings_for_code(self, system: str, code: str) -> List[EnrichedMapping]:
        """
        Active mappings originating at (system, code), one per distinct target.
        When the store holds redundant records for the same target, the first stored wins.
        """
        seen: Set[Tuple[str, str]] = set()
        unique: List[CodeMapping] = []
        for mapping in self.repository.query_mappings(system, code):
            key = (mapping.target_system, mapping.target_code)
            if key in seen:
                continue
            seen.add(key)
            unique.append(mapping)
        return [self.enrich(m) for m in unique]

    def translate_code(self, source_system: str, source_code: str, target_system: str) -> List[CodeMapping]:
        """Active mappings from (source_system, source_code) into target_system, as stored."""
        return self.repository.query_mappings(source_system, source_code, target_system)

    def translate_code_enriched(
        self, source_system: str, source_code: str, target_system: str
    ) -> List[EnrichedMapping]:
        return [
            m for m in self.resolve_mappings_for_code(source_system, source_code)
            if m.target_system == target_system
        ]
