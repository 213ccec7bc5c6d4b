# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
import pytest

from py_namaste_bridge.config import settings
from py_namaste_bridge.repository import TerminologyRepository
from py_namaste_bridge.seed import load_demo_data
from py_namaste_bridge.service import TerminologyService

CSV_HEADER = "code,title,description,system,category,icd_mapping,tm2_mapping,synonyms,metadata"
GRAHANI_ROW = "AYU-DIG-001,Grahani Roga,,AYU,Digestive System,1A00-1A9Z,TM-GI-001,,"


@pytest.fixture(autouse=True)
def store_path(tmp_path, monkeypatch) -> str:
    """Keeps snapshot files written by the CLI inside the test's temporary directory."""
    path = str(tmp_path / "store" / "namaste_bridge.json")
    monkeypatch.setattr(settings, "store_path", path)
    return path


@pytest.fixture
def empty_repository() -> TerminologyRepository:
    """A repository with nothing in it that rejects duplicate codes."""
    return TerminologyRepository(reject_duplicates=True)


@pytest.fixture
def seeded_repository() -> TerminologyRepository:
    """A fresh repository loaded with the demonstration dataset."""
    return load_demo_data(TerminologyRepository(reject_duplicates=True))


@pytest.fixture
def service(seeded_repository) -> TerminologyService:
    return TerminologyService(seeded_repository)


@pytest.fixture
def empty_service(empty_repository) -> TerminologyService:
    return TerminologyService(empty_repository)


@pytest.fixture
def grahani_csv() -> str:
    """The single-row NAMASTE import used throughout the end-to-end tests."""
    return f"{CSV_HEADER}\n{GRAHANI_ROW}\n"


@pytest.fixture
def mixed_csv() -> str:
    """Three valid rows interleaved with two invalid ones (rows 2 and 4)."""
    rows = [
        "AYU-TST-001,Amlapitta,Hyperacidity,AYU,Digestive System,DA22,,Acid reflux|Heartburn,",
        "SID-TST-002,,Missing title,SID,Digestive System,,,,",
        "SID-TST-003,Kaba Suram,,SID,Fever,1A00,TM-FE-001,,\"{\"\"type\"\": \"\"acute\"\"}\"",
        "UNA-TST-004,Zeequn Nafas,,XYZ,Respiratory System,,,,",
        "UNA-TST-005,Suda,Headache,UNA,Nervous System,8A8Z|8A81,,,",
    ]
    return CSV_HEADER + "\n" + "\n".join(rows) + "\n"
