# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
import csv
import io
import json
from typing import Any, Dict, List, Optional

from rich.console import Console

from .config import settings
from .exceptions import MalformedInputError
from .models import (
    ICD11, NAMASTE, NAMASTE_SUBSYSTEMS, TM2,
    CodeMapping, ImportedRow, ImportResult, ImportRowError, NamasteCode, RowValidation, StructureValidation,
)

console = Console(stderr=True)

TEMPLATE_HEADERS = [
    "code", "title", "description", "system", "category",
    "icd_mapping", "tm2_mapping", "synonyms", "metadata",
]
REQUIRED_COLUMNS = ["code", "title", "system", "category"]
RECOMMENDED_COLUMNS = ["description", "icd_mapping", "tm2_mapping"]

# Default confidence of imported NAMASTE links, by target system
TARGET_CONFIDENCE = {
    ICD11: "medium",
    TM2: "high",
}

TEMPLATE_ROWS = [
    {
        "code": "AYU-DIG-001",
        "title": "Grahani Roga",
        "description": "Digestive disorder with irregular bowel movements",
        "system": "AYU",
        "category": "Digestive System",
        "icd_mapping": "K59.9",
        "tm2_mapping": "TM-GI-001",
        "synonyms": "Sprue|Malabsorption",
        "metadata": '{"severity":"moderate","dosha":"vata-pitta"}',
    },
    {
        "code": "SID-RES-001",
        "title": "Swasa Kasam",
        "description": "Respiratory disorders including asthma",
        "system": "SID",
        "category": "Respiratory System",
        "icd_mapping": "J45.9|J44.9",
        "tm2_mapping": "TM-RE-001",
        "synonyms": "Breathing difficulty|Wheezing",
        "metadata": '{"severity":"severe","type":"chronic"}',
    },
    {
        "code": "UNA-SKN-001",
        "title": "Barse",
        "description": "Skin condition characterized by white patches",
        "system": "UNA",
        "category": "Skin Diseases",
        "icd_mapping": "L80",
        "tm2_mapping": "TM-SK-001",
        "synonyms": "Vitiligo|Leucoderma",
        "metadata": '{"type":"pigmentation","progressive":true}',
    },
]


def _text(row: Dict[str, Any], key: str) -> str:
    value = row.get(key)
    return value.strip() if isinstance(value, str) else ""


def _split_pipe(value: str) -> List[str]:
    return [part.strip() for part in value.split("|") if part.strip()]


class NamasteImporter:
    """
    Converts NAMASTE CSV exports into NamasteCode and CodeMapping records.
    Each row is validated independently; a bad row is reported, never fatal.
    """

    def __init__(self, delimiter: Optional[str] = None):
        self.delimiter = delimiter or settings.csv_delimiter

    def parse_csv(self, content: str) -> List[Dict[str, Optional[str]]]:
        """
        Parses CSV text with a header row into dicts of trimmed values.
        Blank lines are skipped, short rows yield None for missing columns and surplus
        columns are dropped. Raises MalformedInputError when the text is not valid CSV.
        """
        reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")), delimiter=self.delimiter, strict=True)
        try:
            if reader.fieldnames is None:
                return []
            reader.fieldnames = [name.strip() for name in reader.fieldnames]
            rows = []
            for row in reader:
                rows.append({
                    key: value.strip() if isinstance(value, str) else value
                    for key, value in row.items()
                    if key is not None
                })
        except csv.Error as e:
            raise MalformedInputError(f"CSV parsing failed: {e}") from e
        return rows

    def validate_row(self, row: Dict[str, Any]) -> RowValidation:
        """
        Validates one CSV row and derives its NamasteCode plus one CodeMapping per
        pipe-delimited ICD-11/TM2 target. Every problem in the row is reported at once.
        """
        errors = []
        code = _text(row, "code")
        title = _text(row, "title")
        system = _text(row, "system").upper()
        category = _text(row, "category")

        if not code:
            errors.append("Code is required")
        if not title:
            errors.append("Title is required")
        if system not in NAMASTE_SUBSYSTEMS:
            errors.append("System must be AYU, SID, or UNA")
        if not category:
            errors.append("Category is required")
        if errors:
            return RowValidation(valid=False, error="; ".join(errors))

        metadata: Dict[str, Any] = {}
        raw_metadata = _text(row, "metadata")
        if raw_metadata:
            try:
                parsed = json.loads(raw_metadata)
                metadata = parsed if isinstance(parsed, dict) else {"raw": raw_metadata}
            except json.JSONDecodeError:
                metadata = {"raw": raw_metadata}

        synonyms = _text(row, "synonyms")
        if synonyms:
            metadata["synonyms"] = _split_pipe(synonyms)

        icd_mapping = _text(row, "icd_mapping")
        tm2_mapping = _text(row, "tm2_mapping")

        namaste_code = NamasteCode(
            code=code,
            title=title,
            description=_text(row, "description") or None,
            system=system,
            category=category,
            icd_mapping=icd_mapping or None,
            tm2_mapping=tm2_mapping or None,
            metadata=metadata,
        )

        mappings = [
            CodeMapping(
                source_system=NAMASTE,
                source_code=code,
                target_system=target_system,
                target_code=target_code,
                mapping_type="related",
                confidence=TARGET_CONFIDENCE[target_system],
                is_active=True,
            )
            for target_system, targets in ((ICD11, icd_mapping), (TM2, tm2_mapping))
            for target_code in _split_pipe(targets)
        ]

        return RowValidation(valid=True, code=namaste_code, mappings=mappings or None)

    def import_from_csv(self, content: str, validate_only: bool = False) -> ImportResult:
        """
        Validates every row of a CSV and collects the resulting records.
        Rows are numbered from 1, excluding the header. `success` is true only when no row
        failed. Records are collected whether or not `validate_only` is set. Storing them is
        left to the caller.
        """
        result = ImportResult()
        try:
            rows = self.parse_csv(content)
        except MalformedInputError as e:
            console.log(f"[red]{e}[/red]")
            result.errors.append(ImportRowError(row=0, error=f"Import failed: {e}"))
            return result

        result.total_rows = len(rows)
        for row_number, row in enumerate(rows, start=1):
            validation = self.validate_row(row)
            if validation.valid and validation.code:
                mappings = validation.mappings or []
                result.successful_imports += 1
                result.codes.append(validation.code)
                result.mappings.extend(mappings)
                result.rows.append(ImportedRow(row=row_number, code=validation.code, mappings=mappings))
            else:
                result.failed_imports += 1
                result.errors.append(ImportRowError(
                    row=row_number,
                    error=validation.error or "Unknown validation error",
                    data=row,
                ))

        result.success = result.failed_imports == 0
        status = "[green]" if result.success else "[yellow]"
        mode = " (validate only)" if validate_only else ""
        console.log(
            f"{status}Validated {result.total_rows} rows{mode}: {result.successful_imports} valid, "
            f"{result.failed_imports} invalid.[/]"
        )
        return result

    def generate_template(self) -> str:
        """A header plus three illustrative rows, quoted wherever a field needs it."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=self.delimiter, lineterminator="\n")
        writer.writerow(TEMPLATE_HEADERS)
        writer.writerows([[row[h] for h in TEMPLATE_HEADERS] for row in TEMPLATE_ROWS])
        return buffer.getvalue()

    def validate_csv_structure(self, content: str) -> StructureValidation:
        """
        Checks the header for required columns. Missing recommended columns only
        produce warnings and never invalidate the file.
        """
        try:
            rows = self.parse_csv(content)
        except MalformedInputError as e:
            return StructureValidation(valid=False, errors=[str(e)])

        if not rows:
            return StructureValidation(valid=False, errors=["CSV file is empty"])

        columns = set(rows[0].keys())
        errors = [f"Missing required column: {col}" for col in REQUIRED_COLUMNS if col not in columns]
        warnings = [f"Optional column not found: {col}" for col in RECOMMENDED_COLUMNS if col not in columns]
        return StructureValidation(valid=not errors, errors=errors, warnings=warnings)
