# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union

# Terminology system identifiers, as they appear in mapping records
ICD11 = "ICD-11"
NAMASTE = "NAMASTE"
TM2 = "TM2"
TERMINOLOGY_SYSTEMS = (ICD11, NAMASTE, TM2)

# NAMASTE sub-systems: Ayurveda, Siddha, Unani
NAMASTE_SUBSYSTEMS = ("AYU", "SID", "UNA")

MAPPING_TYPES = ("exact", "broader", "narrower", "related", "equivalent")
CONFIDENCE_LEVELS = ("high", "medium", "low")


class TerminologyCode(BaseModel):
    """
    Fields shared by every terminology record.
    `id` and `created_at` are assigned by the repository on insert.
    """
    id: Optional[str] = None
    code: str
    title: str
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class IcdCode(TerminologyCode):
    """
    An ICD-11 biomedicine entity (chapter, block or category).
    `parent_code` and `children` link the records into a hierarchy.
    """
    chapter: str
    category: str
    parent_code: Optional[str] = None
    children: Optional[List[str]] = None


class NamasteCode(TerminologyCode):
    """
    A NAMASTE diagnosis code from Ayurveda (AYU), Siddha (SID) or Unani (UNA).
    `icd_mapping`/`tm2_mapping` are denormalized copies of what the mapping
    records hold and may go stale; the mapping records are authoritative.
    """
    system: Literal["AYU", "SID", "UNA"]
    category: str
    icd_mapping: Optional[str] = None
    tm2_mapping: Optional[str] = None


class Tm2Code(TerminologyCode):
    """A Traditional Medicine Module 2 pattern code."""
    pattern: str
    icd_mapping: Optional[str] = None
    namaste_mapping: Optional[str] = None


AnyCode = Union[IcdCode, NamasteCode, Tm2Code]


class CodeMapping(BaseModel):
    """
    A directional link from one terminology code to another.
    The reverse direction is a separate record; it is never inferred.
    `mapping_type` is kept as a free string so unrecognized types round-trip.
    """
    id: Optional[str] = None
    source_system: str
    source_code: str
    target_system: str
    target_code: str
    mapping_type: str
    confidence: Optional[str] = "high"
    is_active: bool = True
    created_at: Optional[datetime] = None


class EnrichedMapping(CodeMapping):
    """A mapping decorated with human-readable titles for both ends."""
    source_title: str
    target_title: str


class SearchActivity(BaseModel):
    id: Optional[str] = None
    query: str
    result_count: int
    timestamp: Optional[datetime] = None


class SearchResults(BaseModel):
    icd_codes: List[IcdCode] = Field(default_factory=list)
    namaste_codes: List[NamasteCode] = Field(default_factory=list)
    tm2_codes: List[Tm2Code] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.icd_codes) + len(self.namaste_codes) + len(self.tm2_codes)


# --- CSV Import ---

class RowValidation(BaseModel):
    valid: bool
    code: Optional[NamasteCode] = None
    mappings: Optional[List[CodeMapping]] = None
    error: Optional[str] = None


class ImportRowError(BaseModel):
    row: int
    error: str
    data: Optional[Dict[str, Any]] = None


class ImportedRow(BaseModel):
    """A valid CSV row and the records derived from it."""
    row: int
    code: NamasteCode
    mappings: List[CodeMapping] = Field(default_factory=list)


class ImportResult(BaseModel):
    """
    Outcome of validating a whole CSV. `success` is False as soon as one row fails,
    even though every valid row is still collected in `codes`/`mappings`.
    """
    success: bool = False
    total_rows: int = 0
    successful_imports: int = 0
    failed_imports: int = 0
    codes: List[NamasteCode] = Field(default_factory=list)
    mappings: List[CodeMapping] = Field(default_factory=list)
    errors: List[ImportRowError] = Field(default_factory=list)
    rows: List[ImportedRow] = Field(default_factory=list, exclude=True)


class ImportReport(ImportResult):
    """An ImportResult after persistence, with counts of what was actually stored."""
    codes_imported: int = 0
    mappings_created: int = 0


class CsvValidation(ImportResult):
    """
    Dry run of an import. A header problem is reported as a row 0 error and
    stops validation before any row is read.
    """
    valid: bool = False
    warnings: List[str] = Field(default_factory=list)


class StructureValidation(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# --- FHIR generation inputs ---

class CodingInput(BaseModel):
    """A (system, code, display) triple used to dual-code a Condition."""
    system: str
    code: str
    display: Optional[str] = None


class ConditionOptions(BaseModel):
    clinical_status: Optional[str] = None
    verification_status: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    onset_date_time: Optional[str] = None
    notes: Optional[str] = None


# --- Audits & Sync ---

class AuditReport(BaseModel):
    is_valid: bool
    violations: List[str] = Field(default_factory=list)


class SyncStatus(BaseModel):
    sync_type: Literal["tm2", "biomedicine", "full"]
    status: Literal["pending", "in_progress", "completed", "failed"] = "pending"
    release_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_processed: int = 0
    records_added: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    error_message: Optional[str] = None
