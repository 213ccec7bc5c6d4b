# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
# Tests for pulling WHO entities into the repository
import pytest

from py_namaste_bridge.models import ICD11, TM2
from py_namaste_bridge.sync import WhoSynchronizer, entity_to_icd_code, entity_to_tm2_code
from py_namaste_bridge.who_client import WhoIcdClient

TOKEN_URL = "https://auth.example.org/connect/token"
API_URL = "https://id.who.int/icd"
MMS_URL = f"{API_URL}/release/11/2024-01/mms"
ENTITY_URL = "https://id.who.int/icd/entity"


def _entity(uri, code, title, class_kind="block", definition=None):
    entity = {"@id": uri, "code": code, "title": {"@language": "en", "@value": title}, "classKind": class_kind}
    if definition:
        entity["definition"] = {"@language": "en", "@value": definition}
    return entity


@pytest.fixture
def client(requests_mock):
    requests_mock.post(TOKEN_URL, json={"access_token": "abc123", "expires_in": 3600})
    return WhoIcdClient("test_id", "test_secret", TOKEN_URL, API_URL, release_id="2024-01")


@pytest.fixture
def tm2_release(requests_mock):
    """Chapter 26 with three TM2 children; the third cannot be fetched."""
    children = [f"{ENTITY_URL}/9001", f"{ENTITY_URL}/9002", f"{ENTITY_URL}/9003"]
    requests_mock.get(f"{MMS_URL}/26", json={
        "@id": f"{ENTITY_URL}/26", "code": "26",
        "title": {"@value": "Traditional medicine conditions - module I"}, "child": children,
    })
    requests_mock.get(children[0], json=_entity(children[0], "SA00", "Spleen qi deficiency pattern",
                                                definition="A pattern of weak transformation"))
    requests_mock.get(children[1], json=_entity(children[1], "TM-GI-001", "Already seeded pattern"))
    requests_mock.get(children[2], status_code=503)
    return children


@pytest.fixture
def biomedicine_release(requests_mock):
    children = [f"{ENTITY_URL}/1435254666", f"{ENTITY_URL}/1630407678"]
    requests_mock.get(MMS_URL, json={"title": {"@value": "ICD-11 MMS"}, "child": children})
    requests_mock.get(children[0], json=_entity(children[0], "01", "Certain infectious or parasitic diseases",
                                                class_kind="chapter"))
    requests_mock.get(children[1], json=_entity(children[1], "02", "Neoplasms", class_kind="chapter"))
    return children


def test_tm2_sync(client, seeded_repository, tm2_release):
    status = WhoSynchronizer(client, seeded_repository).sync("tm2")

    assert status.status == "completed"
    assert status.release_id == "2024-01"
    assert (status.records_processed, status.records_added, status.records_skipped, status.records_failed) == \
        (3, 1, 1, 1)
    assert status.completed_at >= status.started_at

    added = seeded_repository.get_by_code(TM2, "SA00")
    assert added.title == "Spleen qi deficiency pattern"
    assert added.pattern == "Spleen qi deficiency pattern"
    assert added.description == "A pattern of weak transformation"
    assert added.metadata["who_uri"] == tm2_release[0]
    assert seeded_repository.get_by_code(TM2, "TM-GI-001").title == "Digestive system pattern disorder"


def test_biomedicine_sync(client, seeded_repository, biomedicine_release):
    status = WhoSynchronizer(client, seeded_repository).sync("biomedicine")

    assert status.status == "completed"
    assert (status.records_added, status.records_skipped) == (1, 1)
    neoplasms = seeded_repository.get_by_code(ICD11, "02")
    assert (neoplasms.chapter, neoplasms.category, neoplasms.parent_code) == ("02", "chapter", None)


def test_full_sync_covers_both_roots(client, empty_repository, biomedicine_release, tm2_release):
    status = WhoSynchronizer(client, empty_repository).sync("full")

    assert status.status == "completed"
    assert status.records_processed == 5
    assert status.records_added == 4
    assert empty_repository.count(TM2) == 2
    assert empty_repository.count(ICD11) == 2


def test_root_failure_marks_sync_failed(client, empty_repository, requests_mock):
    requests_mock.get(f"{MMS_URL}/26", status_code=500)

    status = WhoSynchronizer(client, empty_repository).sync("tm2")

    assert status.status == "failed"
    assert "500" in status.error_message
    assert status.completed_at is not None
    assert empty_repository.count(TM2) == 0


def test_unknown_sync_type(client, empty_repository):
    with pytest.raises(ValueError):
        WhoSynchronizer(client, empty_repository).sync("everything")


def test_release_override(client, empty_repository, requests_mock):
    requests_mock.get(f"{API_URL}/release/11/2025-01/mms/26", json={"code": "26", "child": []})
    status = WhoSynchronizer(client, empty_repository).sync("tm2", release_id="2025-01")
    assert status.release_id == "2025-01"
    assert status.records_processed == 0


def test_entity_projection():
    block = _entity("http://id.who.int/icd/entity/1", None, "Block without code")
    block["codeRange"] = "1A00-1A9Z"
    icd = entity_to_icd_code(block, parent_code="01")
    assert (icd.code, icd.chapter, icd.parent_code, icd.category) == ("1A00-1A9Z", "01", "01", "block")

    with pytest.raises(ValueError):
        entity_to_tm2_code({"@id": "http://id.who.int/icd/entity/2", "title": {"@value": "No code"}})
