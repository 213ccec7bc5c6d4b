# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
# Tests for the NAMASTE CSV importer
import random

import pytest

from py_namaste_bridge.config import settings
from py_namaste_bridge.exceptions import MalformedInputError
from py_namaste_bridge.importer import TEMPLATE_HEADERS, NamasteImporter
from py_namaste_bridge.models import ICD11, NAMASTE, TM2

CSV_HEADER = "code,title,description,system,category,icd_mapping,tm2_mapping,synonyms,metadata"


@pytest.fixture
def importer():
    return NamasteImporter(delimiter=",")


def test_grahani_row_scenario(importer, grahani_csv):
    """One valid row yields one code and its two mappings with the per-target confidence."""
    result = importer.import_from_csv(grahani_csv)

    assert result.success
    assert result.total_rows == 1
    assert len(result.codes) == 1
    code = result.codes[0]
    assert (code.code, code.system, code.title) == ("AYU-DIG-001", "AYU", "Grahani Roga")
    assert code.description is None

    assert [(m.source_code, m.target_system, m.target_code, m.confidence, m.mapping_type)
            for m in result.mappings] == [
        ("AYU-DIG-001", ICD11, "1A00-1A9Z", "medium", "related"),
        ("AYU-DIG-001", TM2, "TM-GI-001", "high", "related"),
    ]
    assert all(m.source_system == NAMASTE and m.is_active for m in result.mappings)


def test_validate_row_collects_every_error(importer):
    validation = importer.validate_row({"code": "", "title": " ", "system": "XYZ", "category": ""})

    assert not validation.valid
    assert validation.error == (
        "Code is required; Title is required; System must be AYU, SID, or UNA; Category is required"
    )


def test_validate_row_extras(importer):
    """Lower-case systems, pipe lists, synonyms and JSON metadata."""
    validation = importer.validate_row({
        "code": "SID-RES-001", "title": "Swasa Kasam", "system": "sid", "category": "Respiratory System",
        "icd_mapping": "J45.9| J44.9 |", "tm2_mapping": "", "synonyms": "Wheezing||Breathing difficulty",
        "metadata": '{"type": "chronic"}',
    })

    assert validation.valid
    assert validation.code.system == "SID"
    assert validation.code.metadata == {"type": "chronic", "synonyms": ["Wheezing", "Breathing difficulty"]}
    assert [m.target_code for m in validation.mappings] == ["J45.9", "J44.9"]


@pytest.mark.parametrize("raw", ["not json", "[1, 2]"])
def test_unusable_metadata_is_kept_raw(importer, raw):
    validation = importer.validate_row({"code": "AYU-X-1", "title": "X", "system": "AYU", "category": "C",
                                        "metadata": raw})
    assert validation.valid
    assert validation.code.metadata == {"raw": raw}


def test_row_without_mappings(importer):
    validation = importer.validate_row({"code": "AYU-X-1", "title": "X", "system": "AYU", "category": "C"})
    assert validation.valid
    assert validation.mappings is None


def test_valid_rows_revalidate(importer, mixed_csv):
    """Rebuilding a row from a validated code and its mappings validates again to the same record."""
    for row in importer.parse_csv(mixed_csv):
        first = importer.validate_row(row)
        if not first.valid:
            continue
        mappings = first.mappings or []
        rebuilt = {
            "code": first.code.code,
            "title": first.code.title,
            "description": first.code.description or "",
            "system": first.code.system,
            "category": first.code.category,
            "icd_mapping": "|".join(m.target_code for m in mappings if m.target_system == ICD11),
            "tm2_mapping": "|".join(m.target_code for m in mappings if m.target_system == TM2),
        }
        second = importer.validate_row(rebuilt)

        assert second.valid
        assert second.code.code == first.code.code
        assert [(m.target_system, m.target_code) for m in second.mappings or []] == \
            [(m.target_system, m.target_code) for m in mappings]


def test_partial_failure_isolation(importer, mixed_csv):
    result = importer.import_from_csv(mixed_csv)

    assert not result.success
    assert result.total_rows == 5
    assert result.successful_imports == 3
    assert result.failed_imports == 2
    assert [c.code for c in result.codes] == ["AYU-TST-001", "SID-TST-003", "UNA-TST-005"]
    assert [e.row for e in result.errors] == [2, 4]
    assert result.errors[0].error == "Title is required"
    assert result.errors[1].data["code"] == "UNA-TST-004"


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_partial_failure_isolation_any_order(importer, mixed_csv, seed):
    lines = mixed_csv.strip().split("\n")
    body = lines[1:]
    random.Random(seed).shuffle(body)
    result = importer.import_from_csv("\n".join([lines[0], *body]))

    assert (result.successful_imports, result.failed_imports, len(result.codes)) == (3, 2, 3)


def test_validate_only_still_collects_records(importer, mixed_csv):
    result = importer.import_from_csv(mixed_csv, validate_only=True)
    assert result.successful_imports == 3
    assert [c.code for c in result.codes] == ["AYU-TST-001", "SID-TST-003", "UNA-TST-005"]
    assert len(result.mappings) == 5


def test_records_are_grouped_by_row(importer, mixed_csv):
    result = importer.import_from_csv(mixed_csv)

    assert [(r.row, r.code.code) for r in result.rows] == [(1, "AYU-TST-001"), (3, "SID-TST-003"), (5, "UNA-TST-005")]
    assert [[m.target_code for m in r.mappings] for r in result.rows] == [["DA22"], ["1A00", "TM-FE-001"], ["8A8Z", "8A81"]]
    assert "rows" not in result.model_dump()


def test_malformed_csv_becomes_row_zero_error(importer):
    content = f'{CSV_HEADER}\nAYU-DIG-001,"Grahani "Roga,,AYU,Digestive System,,,,\n'
    with pytest.raises(MalformedInputError):
        importer.parse_csv(content)

    result = importer.import_from_csv(content)
    assert not result.success
    assert result.total_rows == 0
    assert result.errors[0].row == 0
    assert result.errors[0].error.startswith("Import failed: CSV parsing failed")


def test_parse_csv_tolerates_ragged_rows_and_blank_lines(importer):
    content = "\ufeffcode , title,system,category\n\nAYU-1, One ,AYU,C,extra\nAYU-2,Two\n"
    rows = importer.parse_csv(content)

    assert rows == [
        {"code": "AYU-1", "title": "One", "system": "AYU", "category": "C"},
        {"code": "AYU-2", "title": "Two", "system": None, "category": None},
    ]


def test_empty_content(importer):
    assert importer.parse_csv("") == []
    result = importer.import_from_csv("")
    assert result.success
    assert result.total_rows == 0


def test_custom_delimiter_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "csv_delimiter", ";")
    result = NamasteImporter().import_from_csv("code;title;system;category\nUNA-1;Suda;UNA;Nervous System\n")
    assert result.success
    assert result.codes[0].code == "UNA-1"


def test_template_is_importable(importer):
    template = importer.generate_template()
    assert template.splitlines()[0] == ",".join(TEMPLATE_HEADERS)
    assert template.endswith("\n")

    result = importer.import_from_csv(template)
    assert result.success
    assert result.total_rows == 3
    assert result.codes[0].metadata["dosha"] == "vata-pitta"
    assert [m.target_code for m in result.mappings if m.source_code == "SID-RES-001"] == \
        ["J45.9", "J44.9", "TM-RE-001"]


def test_structure_validation(importer):
    ok = importer.validate_csv_structure(importer.generate_template())
    assert ok.valid and ok.errors == [] and ok.warnings == []

    minimal = importer.validate_csv_structure("code,title,system,category\nA,B,AYU,C\n")
    assert minimal.valid
    assert minimal.warnings == [
        "Optional column not found: description",
        "Optional column not found: icd_mapping",
        "Optional column not found: tm2_mapping",
    ]

    missing = importer.validate_csv_structure("code,title\nA,B\n")
    assert not missing.valid
    assert missing.errors == ["Missing required column: system", "Missing required column: category"]

    empty = importer.validate_csv_structure("code,title,system,category\n")
    assert not empty.valid
    assert empty.errors == ["CSV file is empty"]
