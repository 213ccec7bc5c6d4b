# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from py_namaste_bridge.config import Settings


def test_defaults(monkeypatch, tmp_path):
    """Without an .env file or environment overrides the documented defaults apply."""
    monkeypatch.chdir(tmp_path)
    settings = Settings()

    assert settings.who_release_id == "2024-01"
    assert settings.who_client_id == ""
    assert settings.fhir_version == "1.0.0"
    assert settings.reject_duplicate_codes is True
    assert settings.csv_delimiter == ","
    assert settings.recent_activity_limit == 10
    assert settings.seed_demo_data is True
    assert settings.store_path == ".namaste_bridge.json"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PYNAMASTEBRIDGE_WHO_CLIENT_ID", "client-from-env")
    monkeypatch.setenv("pynamastebridge_reject_duplicate_codes", "false")
    monkeypatch.setenv("PYNAMASTEBRIDGE_RECENT_ACTIVITY_LIMIT", "25")

    settings = Settings()
    assert settings.who_client_id == "client-from-env"
    assert settings.reject_duplicate_codes is False
    assert settings.recent_activity_limit == 25


def test_env_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("PYNAMASTEBRIDGE_CSV_DELIMITER=;\nPYNAMASTEBRIDGE_WHO_RELEASE_ID=2025-01\n")

    settings = Settings()
    assert settings.csv_delimiter == ";"
    assert settings.who_release_id == "2025-01"
