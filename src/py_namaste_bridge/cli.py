# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel

# We wrap the settings import in a try-except block to provide a nicer
# error message if the environment holds invalid values.
try:
    from .config import settings
except Exception as e:
    console = Console(stderr=True)
    console.print(Panel(
        f"[bold red]Configuration Error:[/bold red]\n{e}\n\nPlease check your .env file and any "
        f"[bold cyan]PYNAMASTEBRIDGE_*[/bold cyan] environment variables.",
        title="[bold red]Initialization Failed[/bold red]",
        border_style="red"
    ))
    raise SystemExit(1)

from .exceptions import NotFoundError
from .fhir import normalize_system
from .models import CodingInput, ConditionOptions
from .service import TerminologyService, build_repository
from .sync import SYNC_TYPES, WhoSynchronizer
from .who_client import build_who_client


app = typer.Typer(
    name="py-namaste-bridge",
    help="Map NAMASTE (Ayurveda, Siddha, Unani) codes to WHO ICD-11 and TM2 and emit FHIR R4 resources."
)
console = Console(stderr=True)


def get_service() -> TerminologyService:
    return TerminologyService(build_repository())


def _emit(data: Any):
    typer.echo(json.dumps(data, indent=2, default=str))


def _dump(records) -> List[Any]:
    return [r.model_dump(mode="json") for r in records]


def _error(message: str, title: str = "Error"):
    console.print(Panel(f"[bold red]{message}", title=f"[bold red]{title}[/bold red]"))
    raise typer.Exit(code=1)


def _not_found(e: NotFoundError):
    console.print(Panel(f"[bold yellow]{e}", title="[bold yellow]Not Found[/bold yellow]", border_style="yellow"))
    raise typer.Exit(code=1)


def _parse_coding(value: str) -> CodingInput:
    """'SYSTEM|CODE' or 'SYSTEM|CODE|DISPLAY' -> CodingInput."""
    parts = [p.strip() for p in value.split("|")]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise typer.BadParameter(f"Expected SYSTEM|CODE[|DISPLAY], got '{value}'")
    return CodingInput(system=normalize_system(parts[0]), code=parts[1], display=parts[2] if len(parts) > 2 else None)


@app.command(name="search", help="Search ICD-11, NAMASTE and TM2 codes by code, title or description.")
def search(query: str = typer.Argument(..., help="Free-text search term.")):
    try:
        results = get_service().search_all(query)
    except Exception as e:
        console.print_exception()
        _error(f"Search failed: {e}")
    _emit({**results.model_dump(mode="json"), "total": results.total})


@app.command(name="lookup", help="Look up a single code in one terminology system.")
def lookup(
    system: str = typer.Argument(..., help="Terminology system: namaste, icd11 or tm2."),
    code: str = typer.Argument(..., help="The code to look up."),
):
    try:
        record = get_service().get_code_by_code(system, code)
    except NotFoundError as e:
        _not_found(e)
    except Exception as e:
        console.print_exception()
        _error(f"Lookup failed: {e}")
    _emit(record.model_dump(mode="json"))


@app.command(name="hierarchy", help="List ICD-11 hierarchy roots, or every code in one chapter.")
def hierarchy(chapter: Optional[str] = typer.Option(None, "--chapter", "-c", help="ICD-11 chapter, e.g. '01'.")):
    service = get_service()
    codes = service.get_by_chapter(chapter) if chapter else service.get_hierarchy_roots()
    _emit(_dump(codes))


@app.command(name="system", help="List the NAMASTE codes of one tradition (AYU, SID or UNA).")
def system_codes(system: str = typer.Argument(..., help="AYU, SID or UNA.")):
    try:
        codes = get_service().get_codes_by_system(system)
    except Exception as e:
        _error(str(e))
    _emit(_dump(codes))


@app.command(name="mappings", help="Show every active mapping of a code, with titles for both ends.")
def mappings(
    system: str = typer.Argument(..., help="Source terminology system."),
    code: str = typer.Argument(..., help="Source code."),
):
    _emit(_dump(get_service().resolve_mappings(system, code)))


@app.command(name="translate", help="Translate a code from one terminology system into another.")
def translate(
    source_system: str = typer.Argument(..., help="Source terminology system."),
    code: str = typer.Argument(..., help="Source code."),
    target_system: str = typer.Argument(..., help="Target terminology system."),
    enriched: bool = typer.Option(False, "--enriched", help="Include source and target titles."),
):
    _emit(_dump(get_service().translate(source_system, code, target_system, enriched=enriched)))


@app.command(name="import", help="Import NAMASTE codes and mappings from a CSV file.")
def import_csv(
    csv_file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV file to import."),
    validate_only: bool = typer.Option(False, "--validate-only", help="Validate rows without storing them."),
):
    """
    Validates every row of the CSV and, when all rows are valid, stores the
    codes and mappings and saves the snapshot. Exits with code 1 if any row failed.
    """
    console.print(Panel(f"[bold cyan]Importing NAMASTE codes from: {csv_file}[/bold cyan]", border_style="cyan"))
    try:
        service = get_service()
        report = service.import_csv(csv_file.read_text(encoding="utf-8"), validate_only=validate_only)
        if report.codes_imported or report.mappings_created:
            service.persist()
    except Exception as e:
        console.print_exception()
        _error(f"An error occurred during the import: {e}")

    for row_error in report.errors:
        console.print(f"[yellow]Row {row_error.row}:[/yellow] {row_error.error}", highlight=False)

    if not report.success:
        _error(
            f"{len(report.errors)} problems found in {report.total_rows} rows. "
            f"Stored {report.codes_imported} codes and {report.mappings_created} mappings.",
            title="Import Failed",
        )
    console.print(Panel(
        f"[bold green]{report.successful_imports} of {report.total_rows} rows valid. "
        f"Stored {report.codes_imported} codes and {report.mappings_created} mappings.[/bold green]",
        title="[bold green]Import Complete[/bold green]"
    ))


@app.command(name="validate", help="Validate the header and every row of a NAMASTE CSV file without importing it.")
def validate(csv_file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True)):
    result = get_service().validate_csv(csv_file.read_text(encoding="utf-8"))
    _emit(result.model_dump(mode="json"))
    if not result.valid:
        raise typer.Exit(code=1)


@app.command(name="template", help="Print (or write) an example NAMASTE import CSV.")
def template(output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the template to this file.")):
    content = get_service().csv_template()
    if output is None:
        typer.echo(content, nl=False)
        return
    output.write_text(content, encoding="utf-8")
    console.print(f"[green]Template written to {output}[/green]")


@app.command(name="codesystem", help="Generate the NAMASTE FHIR CodeSystem.")
def codesystem(system: Optional[str] = typer.Option(None, "--system", "-s", help="Restrict to AYU, SID or UNA.")):
    try:
        resource = get_service().generate_code_system(system)
    except Exception as e:
        _error(str(e))
    _emit(resource)


@app.command(name="conceptmap", help="Generate a FHIR ConceptMap between two terminology systems.")
def conceptmap(
    source_system: str = typer.Argument(..., help="Source terminology system."),
    target_system: str = typer.Argument(..., help="Target terminology system."),
):
    _emit(get_service().generate_concept_map(source_system, target_system))


@app.command(name="condition", help="Generate a dual-coded FHIR Condition.")
def condition(
    patient: str = typer.Option(..., "--patient", "-p", help="Patient reference, e.g. 'Patient/123'."),
    system: str = typer.Option(..., "--system", help="Primary coding system."),
    code: str = typer.Option(..., "--code", help="Primary code."),
    display: Optional[str] = typer.Option(None, "--display", help="Primary display; defaults to the stored title."),
    secondary: List[str] = typer.Option([], "--secondary", help="Additional coding as SYSTEM|CODE[|DISPLAY]. Repeatable."),
    clinical_status: Optional[str] = typer.Option(None, "--clinical-status"),
    verification_status: Optional[str] = typer.Option(None, "--verification-status"),
    severity: Optional[str] = typer.Option(None, "--severity", help="mild, moderate or severe."),
    onset: Optional[str] = typer.Option(None, "--onset", help="Onset date-time (ISO 8601)."),
    notes: Optional[str] = typer.Option(None, "--notes"),
):
    service = get_service()
    system = normalize_system(system)
    primary = CodingInput(system=system, code=code, display=display or service.resolver.title_for(system, code))
    options = ConditionOptions(
        clinical_status=clinical_status,
        verification_status=verification_status,
        severity=severity,
        onset_date_time=onset,
        notes=notes,
    )
    try:
        resource = service.generate_condition(patient, primary, [_parse_coding(s) for s in secondary], options)
    except typer.BadParameter:
        raise
    except Exception as e:
        console.print_exception()
        _error(f"Failed to generate Condition: {e}")
    _emit(resource)


@app.command(name="bundle", help="Generate a FHIR Bundle of the terminology, or of resources read from a file.")
def bundle(
    resources_file: Optional[Path] = typer.Option(
        None, "--resources", "-r", exists=True, dir_okay=False, help="JSON file holding a list of FHIR resources."
    ),
    bundle_type: str = typer.Option("collection", "--type", "-t", help="Bundle type."),
):
    """
    Without --resources, emits the NAMASTE CodeSystem together with every
    non-empty ConceptMap between NAMASTE, ICD-11 and TM2.
    """
    service = get_service()
    if resources_file is None:
        _emit(service.terminology_bundle())
        return
    try:
        resources = json.loads(resources_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _error(f"Invalid JSON in {resources_file}: {e}")
    if not isinstance(resources, list):
        _error(f"{resources_file} must contain a JSON list of resources")
    _emit(service.generate_bundle(resources, bundle_type))


@app.command(name="check-mappings", help="Audit one-to-one NAMASTE mappings and the ICD-11 hierarchy.")
def check_mappings():
    reports = get_service().check_mappings()
    _emit({name: report.model_dump(mode="json") for name, report in reports.items()})
    if not all(report.is_valid for report in reports.values()):
        console.print(Panel("[bold red]Integrity violations found.", title="[bold red]Audit Failed[/bold red]"))
        raise typer.Exit(code=1)


@app.command(name="who-search", help="Search the WHO ICD-11 API.")
def who_search(
    query: str = typer.Argument(..., help="Search term."),
    release: Optional[str] = typer.Option(None, "--release", help="ICD-11 release id, e.g. '2024-01'."),
):
    try:
        result = build_who_client().search(query, release_id=release)
    except Exception as e:
        console.print_exception()
        _error(f"WHO search failed: {e}")
    _emit(result)


@app.command(name="who-sync", help="Pull TM2 and/or biomedicine entities from the WHO ICD-11 API.")
def who_sync(
    sync_type: str = typer.Option("full", "--type", "-t", help=f"One of: {', '.join(SYNC_TYPES)}."),
    release: Optional[str] = typer.Option(None, "--release", help="ICD-11 release id; defaults to the configured one."),
):
    console.print(Panel(
        f"[bold cyan]Starting WHO {sync_type} sync for release: {release or settings.who_release_id}[/bold cyan]",
        border_style="cyan"
    ))
    try:
        service = get_service()
        status = WhoSynchronizer(build_who_client(), service.repository).sync(sync_type, release)
        if status.records_added:
            service.persist()
    except Exception as e:
        console.print_exception()
        _error(f"An error occurred during the WHO sync: {e}")

    _emit(status.model_dump(mode="json"))
    if status.status == "failed":
        _error(f"WHO sync failed: {status.error_message}", title="Sync Failed")


if __name__ == "__main__":
    app()
