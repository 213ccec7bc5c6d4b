# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    WHO ICD-API access and local store behavior for the terminology bridge.
    Every field can be set through a PYNAMASTEBRIDGE_* environment variable or a .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="PYNAMASTEBRIDGE_"
    )

    # --- WHO ICD-11 API ---
    who_client_id: str = Field("", description="OAuth2 client id issued by the WHO ICD-API portal.")
    who_client_secret: str = Field("", description="OAuth2 client secret issued by the WHO ICD-API portal.")
    who_token_endpoint: str = Field(
        "https://icdaccessmanagement.who.int/connect/token",
        description="Token endpoint for the client-credentials grant."
    )
    who_api_endpoint: str = Field("https://id.who.int/icd", description="Base URL of the WHO ICD-API.")
    who_release_id: str = Field("2024-01", description="ICD-11 MMS release used for lookups and coding versions.")
    who_request_timeout: float = Field(30.0, description="Timeout in seconds for each WHO API request.")

    # --- FHIR Generation ---
    fhir_version: str = Field("1.0.0", description="Default business version stamped on generated resources.")
    fhir_publisher: str = Field("MediSutra", description="Publisher written into generated ConceptMaps.")

    # --- Repository & Import Behavior ---
    reject_duplicate_codes: bool = Field(
        default=True,
        description="Reject a code that already exists in its system. When false, the newer record replaces the older one."
    )
    csv_delimiter: str = Field(",", description="Field delimiter for NAMASTE CSV imports.")
    recent_activity_limit: int = Field(10, description="Number of search activity entries returned as 'recent'.")
    seed_demo_data: bool = Field(
        default=True,
        description="Seed the CLI repository with the bundled demonstration dataset."
    )
    store_path: str = Field(
        ".namaste_bridge.json",
        description="JSON snapshot the CLI loads at startup and saves after an import or WHO sync. Empty disables it."
    )


# Instantiate a global settings object to be used throughout the application
settings = Settings()
