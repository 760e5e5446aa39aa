# src/jobradar/flows/single.py
"""
Import one page interactively: preview first, persist only on confirmation.

    flow = SingleImport(extract, sink)
    preview = flow.preview("https://example.com/job/123")   # nothing stored yet
    ...show preview.record.preview() to the operator...
    entity = flow.confirm(preview)                           # normalize + store

Either step can fail; a failed step leaves nothing behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from jobradar.clients.secretary import Extractor, is_valid_url
from jobradar.errors import ClientValidationError, PersistenceError
from jobradar.io.store import Sink
from jobradar.models import ITEM_TEMPLATES, ExtractionRequest, ImportKind, StructuredRecord
from jobradar.pipeline.normalize import normalize_record
from jobradar.template_loader import resolve_template

log = logging.getLogger(__name__)


def build_request(
    url: str,
    template: str,
    *,
    source_language: str = "en",
    target_language: str = "en",
    use_cache: bool = False,
    container_selector: Optional[str] = None,
    templates_dir: Optional[Path] = None,
) -> ExtractionRequest:
    """Request for `template`, with the local template body inlined when we have one."""
    name, content = resolve_template(template, templates_dir)
    return ExtractionRequest(
        url=url.strip(),
        source_language=source_language or "en",
        target_language=target_language or "en",
        template=name,
        template_content=content,
        use_cache=use_cache,
        container_selector=container_selector or None,
    )


@dataclass(frozen=True)
class Preview:
    request: ExtractionRequest
    record: StructuredRecord

    @property
    def url(self) -> str:
        return self.request.url


class SingleImport:
    def __init__(
        self,
        extract: Extractor,
        sink: Sink,
        kind: ImportKind = "job",
        *,
        source_language: str = "en",
        target_language: str = "en",
        use_cache: bool = False,
        templates_dir: Optional[Path] = None,
    ):
        self.extract = extract
        self.sink = sink
        self.kind = kind
        self.source_language = source_language
        self.target_language = target_language
        self.use_cache = use_cache
        self.templates_dir = templates_dir

    def preview(self, url: str) -> Preview:
        """Step 1: extract only. Raises ClientValidationError / ExtractionError."""
        if not is_valid_url(url):
            raise ClientValidationError(f"Please enter a valid URL (got {url!r})")
        request = build_request(
            url,
            ITEM_TEMPLATES[self.kind],
            source_language=self.source_language,
            target_language=self.target_language,
            use_cache=self.use_cache,
            templates_dir=self.templates_dir,
        )
        record = self.extract(request).require_record()
        log.info("Extracted %s record from %s", self.kind, request.url)
        return Preview(request=request, record=record)

    def confirm(self, preview: Preview) -> Dict[str, Any]:
        """Step 2: normalize and store. Raises RecordValidationError / PersistenceError."""
        context: Dict[str, Any] = {}
        if self.kind == "session":
            context = {
                "source_language": preview.request.source_language,
                "target_language": preview.request.target_language,
            }
        entity = normalize_record(self.kind, preview.record, preview.url, **context)
        result = self.sink.submit([entity])
        if not result.ok:
            raise PersistenceError(result.message or f"Could not store the {self.kind}")
        log.info("Stored %s from %s (%d new, %d updated)", self.kind, preview.url, result.inserted, result.updated)
        return entity
