# src/jobradar/flows/batch.py
"""
Batch import: discover links on a listing page, then import them one by one.

Work is strictly sequential and in discovery order. The extraction service
is LLM-backed and throughput sensitive, so there is never more than one call
in flight and every item is followed by a fixed pause.

Progress is published as a stream of immutable BatchSnapshots (one per state
change). Cancellation is cooperative: the token is checked before each item,
so cancelling stops new items from starting but lets the current one finish.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from jobradar.clients.secretary import Extractor, is_valid_url
from jobradar.errors import ClientValidationError, JobRadarError, PersistenceError
from jobradar.flows.single import build_request
from jobradar.io.store import Sink
from jobradar.models import (
    ITEM_TEMPLATES,
    LIST_TEMPLATES,
    BatchSnapshot,
    BatchSummary,
    DiscoveredLinks,
    ExtractionRequest,
    ImportKind,
    LinkDescriptor,
)
from jobradar.pipeline.links import parse_link_list
from jobradar.pipeline.normalize import normalize_record
from jobradar.template_loader import resolve_template

log = logging.getLogger(__name__)

DEFAULT_DELAY = 1.0


class CancelToken:
    """One-way cancellation flag. Safe to set from a signal handler or another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class BatchImport:
    def __init__(
        self,
        extract: Extractor,
        sink: Sink,
        kind: ImportKind = "job",
        *,
        source_language: str = "en",
        target_language: str = "en",
        delay: float = DEFAULT_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        templates_dir: Optional[Path] = None,
    ):
        self.extract = extract
        self.sink = sink
        self.kind = kind
        self.source_language = source_language
        self.target_language = target_language
        self.delay = delay
        self.sleep = sleep
        self.templates_dir = templates_dir

    # ---- discovery -------------------------------------------------------------

    def discover(self, listing_url: str, container_selector: Optional[str] = None) -> DiscoveredLinks:
        """
        One extraction with the list template.
        Raises ClientValidationError, ExtractionError or DiscoveryError.
        """
        if not is_valid_url(listing_url):
            raise ClientValidationError(f"Please enter a valid URL (got {listing_url!r})")
        request = build_request(
            listing_url,
            LIST_TEMPLATES[self.kind],
            source_language=self.source_language,
            target_language=self.target_language,
            container_selector=container_selector,
            templates_dir=self.templates_dir,
        )
        record = self.extract(request).require_record()
        found = parse_link_list(record)
        log.info("Found %d link(s) on %s", len(found.links), listing_url)
        return found

    # ---- execution ---------------------------------------------------------------

    def _import_one(
        self,
        link: LinkDescriptor,
        template: str,
        template_content: Optional[str],
        event: Optional[str],
    ) -> None:
        request = ExtractionRequest(
            url=link.url.strip(),
            source_language=self.source_language,
            target_language=self.target_language,
            template=template,
            template_content=template_content,
        )
        record = self.extract(request).require_record()

        context: Dict[str, Any] = {}
        if self.kind == "session":
            context = {
                "event": event,
                "track": link.hint,
                "fallback_name": link.name,
                "source_language": self.source_language,
                "target_language": self.target_language,
            }
        entity = normalize_record(self.kind, record, link.url.strip(), **context)

        result = self.sink.submit([entity])
        if not result.ok:
            raise PersistenceError(result.message or f"Could not store the {self.kind}")

    def iter_run(
        self,
        links: Sequence[LinkDescriptor],
        token: Optional[CancelToken] = None,
        *,
        event: Optional[str] = None,
    ) -> Iterator[BatchSnapshot]:
        """
        Import `links` in order, yielding a snapshot after every transition:
        the initial state, each item going to `importing`, each item settling
        to `success`/`error`, and a final snapshot with `finished=True`.

        `event` names the event for session imports (operator input or the
        listing's own event name).
        """
        state: List[LinkDescriptor] = [link.with_status("pending") for link in links]
        total = len(state)
        succeeded = failed = 0
        progress = 0.0
        cancelled = False

        def snap(finished: bool = False) -> BatchSnapshot:
            return BatchSnapshot(
                links=tuple(state),
                progress=progress,
                succeeded=succeeded,
                failed=failed,
                cancelled=cancelled,
                finished=finished,
            )

        # the item template is read once; only the URL changes per item
        template, template_content = resolve_template(ITEM_TEMPLATES[self.kind], self.templates_dir)

        yield snap()

        for i, link in enumerate(state):
            if token is not None and token.cancelled:
                cancelled = True
                log.info("Batch cancelled before item %d of %d", i + 1, total)
                break

            state[i] = link.with_status("importing")
            yield snap()

            called_service = is_valid_url(link.url)
            try:
                if not link.url.strip():
                    raise ClientValidationError("Link has no URL")
                if not called_service:
                    raise ClientValidationError(f"Invalid URL: {link.url!r}")
                self._import_one(link, template, template_content, event)
            except JobRadarError as e:
                failed += 1
                state[i] = link.with_status("error", str(e))
                log.warning("Import of %r (%s) failed: %s", link.name, link.url, e)
            except Exception as e:
                failed += 1
                state[i] = link.with_status("error", f"Unexpected error: {e}")
                log.exception("Import of %r (%s) failed unexpectedly", link.name, link.url)
            else:
                succeeded += 1
                state[i] = link.with_status("success")

            progress = (i + 1) / total * 100
            yield snap()

            if called_service and i + 1 < total:
                self.sleep(self.delay)

        yield snap(finished=True)

    def run(
        self,
        links: Sequence[LinkDescriptor],
        token: Optional[CancelToken] = None,
        *,
        event: Optional[str] = None,
        on_snapshot: Optional[Callable[[BatchSnapshot], None]] = None,
    ) -> BatchSummary:
        """Drive iter_run to the end and summarize the last snapshot."""
        snapshots = self.iter_run(links, token, event=event)
        last = next(snapshots)  # iter_run always yields the initial state first
        if on_snapshot is not None:
            on_snapshot(last)
        for last in snapshots:
            if on_snapshot is not None:
                on_snapshot(last)
        summary = BatchSummary.from_snapshot(last)
        log.info(summary.message())
        return summary
