# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
"""
FHIR R4 resource generation: CodeSystem, ConceptMap, Condition and Bundle.

Every function here is a pure projection of its arguments into plain dicts that
serialize directly to FHIR JSON. Optional values that are missing are left out
of the output instead of being written as null, and malformed records are
projected best-effort rather than rejected. Only missing required arguments
raise.
See https://hl7.org/fhir/R4/ for the resource definitions.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .exceptions import InvalidInputError
from .models import ICD11, NAMASTE, TM2, CodeMapping, CodingInput, ConditionOptions, NamasteCode

# Canonical namespace for each terminology system
NAMESPACE_URIS = {
    ICD11: "http://id.who.int/icd/release/11/mms",
    NAMASTE: "http://medisutra.in/fhir/CodeSystem/namaste",
    TM2: "http://id.who.int/icd/release/11/tm2",
}

# Systems a Condition may be coded in; anything else is written through unchanged
CODING_SYSTEM_URIS = {
    **NAMESPACE_URIS,
    "SNOMED-CT": "http://snomed.info/sct",
    "LOINC": "http://loinc.org",
}

DEFAULT_EQUIVALENCE = "relatedto"

# Internal mapping type to FHIR R4 ConceptMapEquivalence
MAPPING_TYPE_TO_EQUIVALENCE = {
    "exact": "equal",
    "broader": "wider",
    "narrower": "narrower",
    "related": "relatedto",
    "equivalent": "equivalent",
}

# Short aliases accepted wherever a system name is given on the command line or in a URL
SYSTEM_ALIASES = {
    "namaste": NAMASTE,
    "icd11": ICD11,
    "icd-11": ICD11,
    "tm2": TM2,
}

CONDITION_CLINICAL_URI = "http://terminology.hl7.org/CodeSystem/condition-clinical"
CONDITION_VER_STATUS_URI = "http://terminology.hl7.org/CodeSystem/condition-ver-status"
CONDITION_CATEGORY_URI = "http://terminology.hl7.org/CodeSystem/condition-category"

SEVERITY_SNOMED_CODES = {
    "mild": "255604002",
    "moderate": "6736007",
    "severe": "24484000",
}

NAMASTE_CODESYSTEM_ID = "namaste-terminology"
NAMASTE_VALUESET_URL = "http://medisutra.in/fhir/ValueSet/namaste"
NAMASTE_PROPERTY_BASE = "http://medisutra.in/fhir/property"
CONCEPTMAP_BASE_URL = "http://medisutra.in/fhir/ConceptMap"


def map_equivalence(mapping_type: Optional[str]) -> str:
    """Maps an internal mapping type to a FHIR equivalence, defaulting to 'relatedto'."""
    return MAPPING_TYPE_TO_EQUIVALENCE.get(mapping_type, DEFAULT_EQUIVALENCE)


def system_uri(system: str) -> Optional[str]:
    """The namespace URI of a known terminology system, or None."""
    return NAMESPACE_URIS.get(system)


def coding_system_uri(system: str) -> str:
    return CODING_SYSTEM_URIS.get(system, system)


def normalize_system(name: str) -> str:
    """'icd11' -> 'ICD-11', 'namaste' -> 'NAMASTE', 'tm2' -> 'TM2'; anything else upper-cased."""
    return SYSTEM_ALIASES.get(name.lower(), name.upper())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _compact(**fields: Any) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


def _display(code: str) -> str:
    return code.replace("-", " ").title()


def generate_code_system(codes: Sequence[NamasteCode], version: str = "1.0.0") -> Dict[str, Any]:
    """Builds the NAMASTE CodeSystem with exactly one concept per input code, in input order."""
    concepts = [
        _compact(
            code=code.code,
            display=code.title,
            definition=code.description or None,
            property=[
                {"code": "system", "valueCode": code.system},
                {"code": "category", "valueString": code.category},
            ],
        )
        for code in codes
    ]

    return {
        "resourceType": "CodeSystem",
        "id": NAMASTE_CODESYSTEM_ID,
        "url": NAMESPACE_URIS[NAMASTE],
        "identifier": [{"system": "urn:ietf:rfc:3986", "value": "urn:oid:2.16.840.1.113883.6.345"}],
        "version": version,
        "name": "NAMASTETerminology",
        "title": "NAMASTE - National Ayush Morbidity And Standardized Terminologies Electronic",
        "status": "active",
        "experimental": False,
        "date": _now(),
        "publisher": "Ministry of AYUSH, Government of India",
        "contact": [{"name": "MediSutra Team", "telecom": [{"system": "url", "value": "http://medisutra.in"}]}],
        "description": "Standardized terminology codes for Ayurveda, Siddha, and Unani "
                       "traditional medicine systems in India",
        "purpose": "To provide standardized coding for traditional medicine diagnoses in EMR systems, "
                   "enabling dual-coding with biomedical systems",
        "copyright": "© 2024 Ministry of AYUSH, Government of India",
        "caseSensitive": True,
        "valueSet": NAMASTE_VALUESET_URL,
        "hierarchyMeaning": "is-a",
        "compositional": False,
        "versionNeeded": False,
        "content": "complete",
        "count": len(codes),
        "property": [
            {
                "code": "system",
                "uri": f"{NAMASTE_PROPERTY_BASE}/system",
                "description": "Traditional medicine system (AYU, SID, UNA)",
                "type": "code",
            },
            {
                "code": "category",
                "uri": f"{NAMASTE_PROPERTY_BASE}/category",
                "description": "Body system or category",
                "type": "string",
            },
        ],
        "concept": concepts,
    }


def generate_concept_map(
    mappings: Sequence[CodeMapping],
    source_system: str,
    target_system: str,
    version: str = "1.0.0",
    publisher: str = "MediSutra",
) -> Dict[str, Any]:
    """
    Builds a ConceptMap with one element per mapping. Callers filter and
    deduplicate beforehand; nothing is dropped here.
    """
    elements = [
        {
            "code": mapping.source_code,
            "target": [
                _compact(
                    code=mapping.target_code,
                    equivalence=map_equivalence(mapping.mapping_type),
                    comment=f"Confidence: {mapping.confidence}" if mapping.confidence else None,
                )
            ],
        }
        for mapping in mappings
    ]
    source_uri = system_uri(source_system)
    target_uri = system_uri(target_system)

    return _compact(
        resourceType="ConceptMap",
        id=f"{source_system.lower()}-to-{target_system.lower()}",
        url=f"{CONCEPTMAP_BASE_URL}/{source_system}-to-{target_system}",
        identifier=[{"system": "urn:ietf:rfc:3986", "value": f"urn:uuid:{uuid.uuid4()}"}],
        version=version,
        name=f"{source_system}To{target_system}Map".replace("-", ""),
        title=f"{source_system} to {target_system} Concept Map",
        status="active",
        experimental=False,
        date=_now(),
        publisher=publisher,
        description=f"Mapping between {source_system} and {target_system} terminology codes",
        purpose="Enable dual-coding and cross-system terminology translation for EMR integration",
        sourceUri=source_uri,
        targetUri=target_uri,
        group=[_compact(source=source_uri, target=target_uri, element=elements)],
    )


CodingArg = Union[CodingInput, Dict[str, Any]]


def _as_coding(value: CodingArg) -> CodingInput:
    return value if isinstance(value, CodingInput) else CodingInput.model_validate(value)


def _status_concept(system: str, code: str) -> Dict[str, Any]:
    return {"coding": [{"system": system, "code": code, "display": _display(code)}]}


def _severity(severity: str) -> Dict[str, Any]:
    snomed = SEVERITY_SNOMED_CODES.get(severity.lower())
    if snomed is None:
        return {"text": severity}
    return {
        "coding": [{"system": CODING_SYSTEM_URIS["SNOMED-CT"], "code": snomed, "display": _display(severity)}],
        "text": severity,
    }


def generate_condition(
    patient_reference: str,
    primary_code: CodingArg,
    secondary_codes: Optional[Iterable[CodingArg]] = None,
    options: Optional[Union[ConditionOptions, Dict[str, Any]]] = None,
    release_id: str = "2024-01",
) -> Dict[str, Any]:
    """
    Builds a dual-coded Condition (problem-list entry). The primary coding comes
    first, followed by each secondary coding in the order given. The resource id
    is freshly generated on every call, so identical inputs yield distinct ids.
    """
    if not patient_reference:
        raise InvalidInputError("patient_reference is required")
    if primary_code is None:
        raise InvalidInputError("primary_code is required")

    if options is None:
        options = ConditionOptions()
    elif not isinstance(options, ConditionOptions):
        options = ConditionOptions.model_validate(options)

    primary = _as_coding(primary_code)
    codings = [
        _compact(system=coding_system_uri(c.system), code=c.code, display=c.display, version=release_id)
        for c in [primary, *(_as_coding(s) for s in secondary_codes or [])]
    ]
    now = _now()

    return _compact(
        resourceType="Condition",
        id=str(uuid.uuid4()),
        meta={
            "versionId": "1",
            "lastUpdated": now,
            "profile": ["http://hl7.org/fhir/StructureDefinition/Condition"],
        },
        clinicalStatus=_status_concept(CONDITION_CLINICAL_URI, options.clinical_status or "active"),
        verificationStatus=_status_concept(CONDITION_VER_STATUS_URI, options.verification_status or "confirmed"),
        category=[_status_concept(CONDITION_CATEGORY_URI, options.category or "problem-list-item")],
        severity=_severity(options.severity) if options.severity else None,
        code=_compact(coding=codings, text=primary.display),
        subject={"reference": patient_reference},
        onsetDateTime=options.onset_date_time or now,
        recordedDate=now,
        note=[{"text": options.notes}] if options.notes else None,
    )


def generate_bundle(resources: Sequence[Dict[str, Any]], bundle_type: str = "collection") -> Dict[str, Any]:
    """Wraps every resource in a Bundle entry; total always equals len(resources)."""
    return {
        "resourceType": "Bundle",
        "id": str(uuid.uuid4()),
        "type": bundle_type,
        "timestamp": _now(),
        "total": len(resources),
        "entry": [
            {"fullUrl": f"{resource.get('resourceType')}/{resource.get('id')}", "resource": resource}
            for resource in resources
        ],
    }
