# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TimeRemainingColumn

from .models import ICD11, TM2, AnyCode, IcdCode, SyncStatus, Tm2Code
from .repository import TerminologyRepository
from .who_client import WhoIcdClient, entity_definition, entity_title

console = Console(stderr=True)

SYNC_TYPES = ("tm2", "biomedicine", "full")


def _entity_code(entity: Dict[str, Any]) -> str:
    # Blocks carry a codeRange instead of a code
    code = entity.get("code") or entity.get("codeRange")
    if not code:
        raise ValueError(f"WHO entity {entity.get('@id', '<unknown>')} has no code")
    return code


def _metadata(entity: Dict[str, Any]) -> Dict[str, Any]:
    return {"source": "WHO ICD-API", "who_uri": entity.get("@id"), "class_kind": entity.get("classKind")}


def entity_to_tm2_code(entity: Dict[str, Any]) -> Tm2Code:
    title = entity_title(entity)
    return Tm2Code(
        code=_entity_code(entity),
        title=title,
        description=entity_definition(entity),
        pattern=title,
        metadata=_metadata(entity),
    )


def entity_to_icd_code(entity: Dict[str, Any], parent_code: Optional[str] = None) -> IcdCode:
    """Chapters are their own chapter; anything below inherits the parent's code as its chapter."""
    code = _entity_code(entity)
    class_kind = entity.get("classKind") or "category"
    return IcdCode(
        code=code,
        title=entity_title(entity),
        description=entity_definition(entity),
        chapter=code if class_kind == "chapter" or parent_code is None else parent_code,
        category=class_kind,
        parent_code=parent_code,
        metadata=_metadata(entity),
    )


class WhoSynchronizer:
    """
    Pulls TM2 and biomedicine entities from the WHO ICD-API into the repository.
    Only the direct children of each root are fetched. Codes already stored are
    skipped, never overwritten.
    """

    def __init__(self, client: WhoIcdClient, repository: TerminologyRepository):
        self.client = client
        self.repository = repository

    def sync(self, sync_type: str = "full", release_id: Optional[str] = None) -> SyncStatus:
        if sync_type not in SYNC_TYPES:
            raise ValueError(f"sync_type must be one of: {', '.join(SYNC_TYPES)}")

        release_id = release_id or self.client.release_id
        status = SyncStatus(
            sync_type=sync_type,
            status="in_progress",
            release_id=release_id,
            started_at=datetime.now(timezone.utc),
        )
        console.log(f"Starting WHO [bold cyan]{sync_type}[/bold cyan] sync for release {release_id}...")

        try:
            if sync_type in ("tm2", "full"):
                root = self.client.get_tm2_root(release_id)
                self._sync_children(root, TM2, status)
            if sync_type in ("biomedicine", "full"):
                root = self.client.get_foundation(release_id)
                self._sync_children(root, ICD11, status)
            status.status = "completed"
            console.log(
                f"[green]Sync completed: {status.records_added} added, {status.records_skipped} skipped, "
                f"{status.records_failed} failed.[/green]"
            )
        except requests.RequestException as e:
            status.status = "failed"
            status.error_message = str(e)
            console.log(f"[red]WHO sync failed: {e}[/red]")

        status.completed_at = datetime.now(timezone.utc)
        return status

    def _project(self, entity: Dict[str, Any], system: str, parent_code: Optional[str]) -> AnyCode:
        if system == TM2:
            return entity_to_tm2_code(entity)
        return entity_to_icd_code(entity, parent_code)

    def _sync_children(self, root: Dict[str, Any], system: str, status: SyncStatus):
        child_uris = root.get("child", [])
        parent_code = root.get("code")
        console.log(f"Found {len(child_uris)} {system} entities under '{entity_title(root) or parent_code}'.")

        with Progress(
            "[progress.description]{task.description}",
            BarColumn(),
            MofNCompleteColumn(),
            "ETA:", TimeRemainingColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"Syncing {system}", total=len(child_uris))
            for child_uri in child_uris:
                status.records_processed += 1
                try:
                    record = self._project(self.client.get_entity(child_uri), system, parent_code)
                except (requests.RequestException, ValueError) as e:
                    status.records_failed += 1
                    console.log(f"[yellow]Skipping {child_uri}: {e}[/yellow]")
                    progress.update(task, advance=1)
                    continue

                if self.repository.get_by_code(system, record.code) is not None:
                    status.records_skipped += 1
                else:
                    self.repository.put_code(system, record)
                    status.records_added += 1
                progress.update(task, advance=1)
