# src/jobradar/cli.py
"""
Command-line interface for the import pipeline.

This module provides CLI commands to:
- Import a single job/session page (preview, then confirm before storing)
- Discover links on a listing page and import them as a batch
- Show stored records and available extraction templates
- Debug Google Sheets access when the Sheets sink is used
"""

from dotenv import load_dotenv
load_dotenv(override=True)  # automatically looks for a .env file in the project root

import json
import logging
import signal
import textwrap
from typing import Any, Dict, Mapping, NoReturn, Optional

import httpx
import typer

from jobradar.clients.secretary import make_extractor
from jobradar.config import Settings, load_settings
from jobradar.errors import (
    ConfigError,
    ExtractionTimeout,
    HttpError,
    JobRadarError,
    NetworkError,
)
from jobradar.flows.batch import BatchImport, CancelToken
from jobradar.flows.single import SingleImport
from jobradar.io.sheets import SheetsStore
from jobradar.io.store import JsonFileStore, Sink
from jobradar.models import BatchSnapshot, LinkStatus
from jobradar.pipeline.filter import filter_new
from jobradar.template_loader import available_templates

# Typer app instance for CLI commands
app = typer.Typer(help="Import job and session listings from web pages")

KIND_HELP = "What the page describes: job or session"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr"),
    debug: bool = typer.Option(False, "--debug", help="Log everything, including HTTP details"),
):
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ---- helpers -------------------------------------------------------------------

def _settings() -> Settings:
    try:
        return load_settings()
    except JobRadarError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)


def _check_kind(kind: str) -> str:
    kind = kind.strip().lower()
    if kind not in ("job", "session"):
        raise typer.BadParameter("kind must be 'job' or 'session'")
    return kind


def open_sink(settings: Settings, kind: str) -> Sink:
    """JSON files under JOBRADAR_STORE_DIR, or the Google sheet when JOBRADAR_SINK=sheets."""
    if settings.sink == "sheets":
        return SheetsStore(settings.sheet_id, kind=kind, service_account_file=settings.service_account_file)
    return JsonFileStore(settings.store_dir, kind=kind)


def operator_message(e: JobRadarError) -> str:
    """Turn a classified failure into something an operator can act on."""
    if isinstance(e, HttpError):
        return f"Extraction service answered HTTP {e.status}: {e}"
    if isinstance(e, ExtractionTimeout):
        return f"Extraction service did not respond in time. {e}"
    if isinstance(e, NetworkError):
        return f"Extraction service not reachable. {e}"
    return str(e)


def _fail(e: JobRadarError) -> NoReturn:
    typer.echo(operator_message(e), err=True)
    raise typer.Exit(code=2 if isinstance(e, ConfigError) else 1)


def _describe(metadata: Mapping[str, Any]) -> str:
    """Extra listing fields (location, date, ...) as one short line."""
    parts = [f"{k}: {v}" for k, v in metadata.items() if isinstance(v, (str, int, float)) and str(v).strip()]
    return "; ".join(parts)


MARKS: Dict[LinkStatus, str] = {"pending": " ", "importing": "…", "success": "✓", "error": "✗"}


class _ProgressPrinter:
    """Print one line whenever a link settles."""

    def __init__(self) -> None:
        self._seen: Dict[int, LinkStatus] = {}

    def __call__(self, snap: BatchSnapshot) -> None:
        for i, link in enumerate(snap.links):
            if link.status in ("success", "error") and self._seen.get(i) != link.status:
                line = f"[{snap.processed}/{snap.total} {snap.progress:5.1f}%] {MARKS[link.status]} {link.name}"
                if link.error:
                    line += "\n" + textwrap.indent(link.error, "    ")
                typer.echo(line)
            self._seen[i] = link.status


# ---- commands ------------------------------------------------------------------

@app.command()
def import_url(
    url: str,
    kind: str = typer.Option("job", "--kind", "-k", help=KIND_HELP),
    source_language: str = typer.Option("en", "--source-language", help="Language of the page"),
    target_language: str = typer.Option("en", "--target-language", help="Language to store"),
    cache: bool = typer.Option(False, "--cache", help="Let the service reuse a cached extraction"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Store without asking after the preview"),
    as_json: bool = typer.Option(False, "--json", help="Print the stored record as JSON"),
):
    """
    Extract one page → show preview → (confirm) → normalize → store.
    Nothing is stored unless you confirm.
    """
    kind = _check_kind(kind)
    settings = _settings()
    try:
        extract = make_extractor(settings)
    except JobRadarError as e:
        _fail(e)

    flow = SingleImport(
        extract,
        open_sink(settings, kind),
        kind,
        source_language=source_language,
        target_language=target_language,
        use_cache=cache,
        templates_dir=settings.templates_dir,
    )

    typer.echo(f"Extracting {kind} data from {url} ...")
    try:
        preview = flow.preview(url)
    except JobRadarError as e:
        _fail(e)

    typer.echo(json.dumps(preview.record.preview(), indent=2, ensure_ascii=False, default=str))

    if not yes and not typer.confirm(f"Create this {kind}?"):
        typer.echo("Nothing stored.")
        return

    try:
        entity = flow.confirm(preview)
    except JobRadarError as e:
        _fail(e)
    if as_json:
        typer.echo(json.dumps(entity, indent=2, ensure_ascii=False, default=str))
        return
    title = entity.get("title") or entity.get("session") or ""
    typer.echo(f"Stored {kind}: {title}")


@app.command()
def import_batch(
    listing_url: str,
    kind: str = typer.Option("job", "--kind", "-k", help=KIND_HELP),
    container_selector: Optional[str] = typer.Option(
        None, "--container-selector", help="XPath/CSS hint for the part of the page that holds the links"
    ),
    source_language: str = typer.Option("en", "--source-language", help="Language of the pages"),
    target_language: str = typer.Option("en", "--target-language", help="Language to store"),
    event: Optional[str] = typer.Option(None, "--event", help="Event name for session imports (overrides the page)"),
    skip_known: bool = typer.Option(False, "--skip-known", help="Leave out links already in the store"),
    delay: Optional[float] = typer.Option(None, "--delay", help="Seconds between items (default JOBRADAR_BATCH_DELAY)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Start without asking after discovery"),
):
    """
    Discover links on a listing page → review → import them one at a time.
    Ctrl-C during the import finishes the current item and skips the rest.
    """
    kind = _check_kind(kind)
    settings = _settings()
    sink = open_sink(settings, kind)

    with httpx.Client() as client:
        try:
            extract = make_extractor(settings, client=client)
        except JobRadarError as e:
            _fail(e)

        batch = BatchImport(
            extract,
            sink,
            kind,
            source_language=source_language,
            target_language=target_language,
            delay=settings.batch_delay if delay is None else delay,
            templates_dir=settings.templates_dir,
        )

        typer.echo(f"Loading link list from {listing_url} ...")
        try:
            found = batch.discover(listing_url, container_selector)
        except JobRadarError as e:
            _fail(e)

        links = list(found.links)
        if skip_known:
            before = len(links)
            try:
                known = sink.known_urls()
            except JobRadarError as e:
                _fail(e)
            links = filter_new(links, known)
            typer.echo(f"{before - len(links)} link(s) already stored; skipping them.")
        if not links:
            typer.echo("Nothing left to import.")
            return

        typer.echo(f"Found {len(links)} {kind}(s):")
        for n, link in enumerate(links, 1):
            label = f" [{link.hint}]" if link.hint else ""
            typer.echo(f"  {n:3d}. {link.name}{label}\n       {link.url or '(no URL)'}")
            details = _describe(link.metadata)
            if details:
                typer.echo(f"       {details}")

        event_name = event or found.event or None
        if kind == "session" and event_name:
            typer.echo(f"Event: {event_name}")

        if not yes and not typer.confirm(f"Import {len(links)} {kind}(s)?"):
            typer.echo("Nothing imported.")
            return

        token = CancelToken()

        def _on_sigint(signum, frame):
            if token.cancelled:
                signal.signal(signal.SIGINT, signal.default_int_handler)
                raise KeyboardInterrupt
            token.cancel()
            typer.echo("\nCancelling after the current item (Ctrl-C again to abort now) ...", err=True)

        previous = signal.signal(signal.SIGINT, _on_sigint)
        try:
            summary = batch.run(links, token, event=event_name, on_snapshot=_ProgressPrinter())
        finally:
            signal.signal(signal.SIGINT, previous)

    typer.echo(summary.message())
    if summary.outcome == "completed":
        try:
            stored = sink.records()
        except JobRadarError as e:
            _fail(e)
        typer.echo(f"Store now holds {len(stored)} {kind} record(s).")
    else:
        raise typer.Exit(code=1)


@app.command()
def templates():
    """List the extraction templates and whether a local body is sent inline."""
    settings = _settings()
    for name, local in available_templates(settings.templates_dir):
        where = "local body" if local else "name only (service copy)"
        typer.echo(f"{name:32s} {where}")


@app.command()
def records(
    kind: str = typer.Option("job", "--kind", "-k", help=KIND_HELP),
):
    """Print what the configured store holds."""
    kind = _check_kind(kind)
    settings = _settings()
    try:
        rows = open_sink(settings, kind).records()
    except JobRadarError as e:
        _fail(e)
    typer.echo(json.dumps(rows, indent=2, ensure_ascii=False, default=str))
    typer.echo(f"{len(rows)} {kind} record(s).", err=True)


@app.command()
def sheets_debug():
    """
    List worksheet titles and IDs via gspread to verify private access.
    Only relevant with JOBRADAR_SINK=sheets.
    """
    import gspread

    settings = _settings()
    if not settings.sheet_id:
        typer.echo("JOBRADAR_SHEET_ID is not set.", err=True)
        raise typer.Exit(code=2)

    gc = gspread.service_account(filename=settings.service_account_file)
    sh = gc.open_by_key(settings.sheet_id)
    for ws in sh.worksheets():
        print(f"{ws.title}  gid={ws.id}")


if __name__ == "__main__":
    app()
