# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
"""
Demonstration dataset: a small ICD-11 hierarchy, six NAMASTE diagnoses and
their TM2 patterns, linked one-to-one in every direction.

NOTE: These records are illustrative, not an authoritative crosswalk.
"""
from typing import List, Tuple

from rich.console import Console

from .models import ICD11, NAMASTE, TM2, CodeMapping, IcdCode, NamasteCode, Tm2Code
from .repository import TerminologyRepository

console = Console(stderr=True)

ICD_CODES = [
    IcdCode(code="01", title="Certain infectious or parasitic diseases",
            description="Diseases generally recognized as communicable or transmissible",
            chapter="01", category="Chapter", parent_code=None,
            children=["1A00-1A9Z", "1B10-1B1Z"], metadata={"level": 1}),
    IcdCode(code="1A00-1A9Z", title="Gastroenteritis and colitis of infectious origin",
            description="Gastroenteritis is characterized by inflammation of the gastrointestinal tract",
            chapter="01", category="Block", parent_code="01",
            children=["1A00", "1A0Z"], metadata={"level": 2}),
    IcdCode(code="1A00", title="Cholera",
            description="An acute diarrhoeal infection caused by ingestion of food or water "
                        "contaminated with the bacterium Vibrio cholerae",
            chapter="01", category="Category", parent_code="1A00-1A9Z", metadata={"level": 3}),
    IcdCode(code="1A0Z", title="Other gastroenteritis and colitis of infectious origin",
            description="Other specified forms of gastroenteritis and colitis of infectious origin",
            chapter="01", category="Category", parent_code="1A00-1A9Z", metadata={"level": 3}),
    IcdCode(code="1B10-1B1Z", title="Mycoses",
            description="Infections caused by fungi",
            chapter="01", category="Block", parent_code="01",
            children=["1B20"], metadata={"level": 2}),
    IcdCode(code="1B20", title="Dermatophytosis", description="Fungal infection of the skin",
            chapter="01", category="Category", parent_code="1B10-1B1Z", metadata={"level": 3}),
    IcdCode(code="BA00", title="Heart failure", description="Inability of the heart to pump blood effectively",
            chapter="11", category="Category", metadata={"level": 2}),
    IcdCode(code="J06.9", title="Acute upper respiratory infection, unspecified",
            description="Acute upper respiratory infection without specification of site",
            chapter="12", category="Category", metadata={"level": 3}),
    IcdCode(code="26", title="Traditional Medicine Module 2 (TM2)",
            description="Traditional medicine diagnoses and patterns",
            chapter="26", category="Chapter", metadata={"level": 1}),
]

NAMASTE_CODES = [
    NamasteCode(code="AYU-DIG-001", title="Grahani Roga",
                description="Digestive disorders characterized by irregular bowel movements "
                            "and abdominal discomfort in Ayurveda",
                system="AYU", category="Digestive System", icd_mapping="1A00-1A9Z", tm2_mapping="TM-GI-001",
                metadata={"tradition": "Ayurveda", "severity": "moderate"}),
    NamasteCode(code="SID-DIG-003", title="Vayvu Gunma",
                description="Wind-related digestive imbalance in Siddha medicine",
                system="SID", category="Digestive System", icd_mapping="1A0Z", tm2_mapping="TM-GI-002",
                metadata={"tradition": "Siddha", "dosha": "vata"}),
    NamasteCode(code="UNA-RES-005", title="Nazla Zukam",
                description="Upper respiratory tract infection in Unani medicine",
                system="UNA", category="Respiratory System", icd_mapping="J06.9", tm2_mapping="TM-RE-001",
                metadata={"tradition": "Unani", "temperament": "cold"}),
    NamasteCode(code="AYU-FEV-002", title="Jwara", description="Fever conditions in Ayurveda",
                system="AYU", category="Fever", icd_mapping="1A00", tm2_mapping="TM-FE-001",
                metadata={"tradition": "Ayurveda", "severity": "mild"}),
    NamasteCode(code="SID-SKI-004", title="Tol Noygal", description="Skin disorders in Siddha medicine",
                system="SID", category="Skin", icd_mapping="1B20", tm2_mapping="TM-SK-001",
                metadata={"tradition": "Siddha", "dosha": "pitta"}),
    NamasteCode(code="UNA-CAR-006", title="Khaafqaan", description="Heart palpitations in Unani medicine",
                system="UNA", category="Cardiovascular", icd_mapping="BA00", tm2_mapping="TM-CA-001",
                metadata={"tradition": "Unani", "temperament": "hot"}),
]

TM2_CODES = [
    Tm2Code(code="TM-GI-001", title="Digestive system pattern disorder",
            description="Traditional medicine pattern involving digestive system imbalances",
            pattern="Digestive Fire Imbalance", icd_mapping="1A00-1A9Z", namaste_mapping="AYU-DIG-001",
            metadata={"system": "Traditional Medicine", "category": "Digestive"}),
    Tm2Code(code="TM-GI-002", title="Wind-type digestive disorder",
            description="Digestive imbalance related to wind element patterns",
            pattern="Wind-Digestive Pattern", icd_mapping="1A0Z", namaste_mapping="SID-DIG-003",
            metadata={"system": "Traditional Medicine", "category": "Digestive"}),
    Tm2Code(code="TM-RE-001", title="Respiratory system pattern disorder",
            description="Traditional medicine pattern involving respiratory system imbalances",
            pattern="Wind-Cold Pattern", icd_mapping="J06.9", namaste_mapping="UNA-RES-005",
            metadata={"system": "Traditional Medicine", "category": "Respiratory"}),
    Tm2Code(code="TM-FE-001", title="Fever pattern disorder", description="Traditional medicine fever patterns",
            pattern="Heat-Fever Pattern", icd_mapping="1A00", namaste_mapping="AYU-FEV-002",
            metadata={"system": "Traditional Medicine", "category": "Fever"}),
    Tm2Code(code="TM-SK-001", title="Skin pattern disorder",
            description="Traditional medicine skin condition patterns",
            pattern="Heat-Skin Pattern", icd_mapping="1B20", namaste_mapping="SID-SKI-004",
            metadata={"system": "Traditional Medicine", "category": "Skin"}),
    Tm2Code(code="TM-CA-001", title="Heart pattern disorder",
            description="Traditional medicine heart and cardiovascular patterns",
            pattern="Heart-Fire Pattern", icd_mapping="BA00", namaste_mapping="UNA-CAR-006",
            metadata={"system": "Traditional Medicine", "category": "Cardiovascular"}),
    Tm2Code(code="26", title="Traditional Medicine Conditions",
            description="Root category for all traditional medicine pattern-based diagnoses",
            pattern="Root Category", metadata={"system": "Traditional Medicine", "category": "Root"}),
]

# (namaste, icd-11, tm2) triples; each pair is linked in both directions
CROSSWALK: List[Tuple[str, str, str]] = [
    ("AYU-DIG-001", "1A00-1A9Z", "TM-GI-001"),
    ("SID-DIG-003", "1A0Z", "TM-GI-002"),
    ("UNA-RES-005", "J06.9", "TM-RE-001"),
    ("AYU-FEV-002", "1A00", "TM-FE-001"),
    ("SID-SKI-004", "1B20", "TM-SK-001"),
    ("UNA-CAR-006", "BA00", "TM-CA-001"),
]


def _exact_pair(system_a: str, code_a: str, system_b: str, code_b: str) -> List[CodeMapping]:
    return [
        CodeMapping(source_system=system_a, source_code=code_a, target_system=system_b,
                    target_code=code_b, mapping_type="exact", confidence="high"),
        CodeMapping(source_system=system_b, source_code=code_b, target_system=system_a,
                    target_code=code_a, mapping_type="exact", confidence="high"),
    ]


def demo_mappings() -> List[CodeMapping]:
    """Forward and reverse records for every crosswalk pair, forward NAMASTE links first."""
    forward, reverse = [], []
    for namaste_code, icd_code, tm2_code in CROSSWALK:
        for there, back in (
            _exact_pair(NAMASTE, namaste_code, ICD11, icd_code),
            _exact_pair(NAMASTE, namaste_code, TM2, tm2_code),
            _exact_pair(TM2, tm2_code, ICD11, icd_code),
        ):
            forward.append(there)
            reverse.append(back)
    return forward + reverse


def load_demo_data(repository: TerminologyRepository) -> TerminologyRepository:
    """Populates `repository` with the demonstration dataset and returns it."""
    for record in ICD_CODES:
        repository.put_code(ICD11, record)
    for record in NAMASTE_CODES:
        repository.put_code(NAMASTE, record)
    for record in TM2_CODES:
        repository.put_code(TM2, record)
    mappings = demo_mappings()
    for mapping in mappings:
        repository.put_mapping(mapping)
    console.log(
        f"Seeded {len(ICD_CODES)} ICD-11, {len(NAMASTE_CODES)} NAMASTE and "
        f"{len(TM2_CODES)} TM2 codes with {len(mappings)} mappings."
    )
    return repository
