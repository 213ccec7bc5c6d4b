# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
"""
Client for the WHO ICD-11 API (https://id.who.int/swagger/index.html).
Authenticates with OAuth2 client credentials and fetches MMS entities,
search results and the Traditional Medicine chapter.
"""
import time
from typing import Any, Dict, List, Optional

import requests
from rich.console import Console

from .config import settings

console = Console(stderr=True)

# Chapter 26 of the MMS linearization holds the Traditional Medicine conditions
TM2_CHAPTER = "26"


class WhoIcdClient:
    """
    Thin wrapper over the WHO ICD-API. Tokens are cached and refreshed a minute
    before they expire. HTTP failures surface as `requests.HTTPError`.
    """
    TOKEN_SCOPE = "icdapi_access"
    TOKEN_REFRESH_MARGIN = 60

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_endpoint: str,
        api_endpoint: str,
        release_id: str = "2024-01",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_endpoint = token_endpoint
        self.api_endpoint = api_endpoint.rstrip("/")
        self.release_id = release_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def authenticate(self) -> str:
        """Returns a valid bearer token, requesting a new one only when the cached token is stale."""
        if self._access_token and self._token_expires_at > time.time():
            return self._access_token

        if not self.client_id or not self.client_secret:
            raise ValueError(
                "WHO ICD-API credentials are not configured. "
                "Set PYNAMASTEBRIDGE_WHO_CLIENT_ID and PYNAMASTEBRIDGE_WHO_CLIENT_SECRET."
            )

        console.log("Requesting WHO ICD-API access token...")
        response = self.session.post(
            self.token_endpoint,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": self.TOKEN_SCOPE,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        self._access_token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in", 3600)) - self.TOKEN_REFRESH_MARGIN
        return self._access_token

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.authenticate()}",
            "Accept": "application/json",
            "API-Version": "v2",
            "Accept-Language": "en",
        }

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session.get(url, headers=self._headers(), params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _mms_url(self, path: str, release_id: Optional[str] = None) -> str:
        return f"{self.api_endpoint}/release/11/{release_id or self.release_id}/mms/{path}"

    def get_entity(self, uri: str) -> Dict[str, Any]:
        """Fetches an entity by its full URI. WHO returns http:// ids that must be fetched over https."""
        if uri.startswith("http://id.who.int/"):
            uri = "https://" + uri[len("http://"):]
        return self._get(uri)

    def search(
        self,
        query: str,
        release_id: Optional[str] = None,
        flat_results: bool = True,
        use_flexisearch: bool = True,
    ) -> Dict[str, Any]:
        console.log(f"Searching WHO ICD-11 for [bold cyan]{query}[/bold cyan]...")
        return self._get(
            self._mms_url("search", release_id),
            params={
                "q": query,
                "flatResults": str(flat_results).lower(),
                "useFlexisearch": str(use_flexisearch).lower(),
            },
        )

    def get_entity_by_code(self, code: str, release_id: Optional[str] = None) -> Dict[str, Any]:
        return self._get(self._mms_url(f"codeinfo/{code}", release_id))

    def get_tm2_root(self, release_id: Optional[str] = None) -> Dict[str, Any]:
        """The Traditional Medicine chapter entity, whose `child` list holds the TM2 entities."""
        return self._get(self._mms_url(TM2_CHAPTER, release_id))

    def get_foundation(self, release_id: Optional[str] = None) -> Dict[str, Any]:
        """The root of the MMS linearization (the biomedicine chapters)."""
        return self._get(f"{self.api_endpoint}/release/11/{release_id or self.release_id}/mms")

    def get_entity_children(self, uri: str) -> List[Dict[str, Any]]:
        """
        Fetches every direct child of an entity. A child that fails to load is
        logged and skipped so one bad entity does not abort the walk.
        """
        entity = self.get_entity(uri)
        children = []
        for child_uri in entity.get("child", []):
            try:
                children.append(self.get_entity(child_uri))
            except requests.RequestException as e:
                console.log(f"[yellow]Failed to fetch child {child_uri}: {e}[/yellow]")
        return children


def build_who_client() -> WhoIcdClient:
    """
    Entry point function to construct a WHO client using app settings.
    """
    return WhoIcdClient(
        client_id=settings.who_client_id,
        client_secret=settings.who_client_secret,
        token_endpoint=settings.who_token_endpoint,
        api_endpoint=settings.who_api_endpoint,
        release_id=settings.who_release_id,
        timeout=settings.who_request_timeout,
    )


def entity_title(entity: Dict[str, Any]) -> str:
    """WHO titles are JSON-LD language maps: {'@language': 'en', '@value': '...'}."""
    title = entity.get("title")
    if isinstance(title, dict):
        return title.get("@value", "")
    return title or ""


def entity_definition(entity: Dict[str, Any]) -> Optional[str]:
    definition = entity.get("definition")
    if isinstance(definition, dict):
        return definition.get("@value")
    return definition
