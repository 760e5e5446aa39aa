# src/jobradar/models.py
"""
Types shared by the import pipeline.

- Request/result types for the secretary extraction service.
- `StructuredRecord`: the untrusted payload the service returns. Only the
  normalizer and the link parser look inside it.
- `Job` / `Session`: persistence-ready records. At runtime they are plain
  dicts (TypedDict); the normalizer is the only thing that builds them.
- Link/snapshot types for the batch orchestrator. All frozen: every status
  change produces a new object.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, TypedDict

from jobradar.errors import ServiceError


ImportKind = Literal["job", "session"]
LinkStatus = Literal["pending", "importing", "success", "error"]

# Template names known to the secretary service.
JOB_DATA_TEMPLATE = "ExtractJobDataFromWebsite"
JOB_LIST_TEMPLATE = "ExtractJobListFromWebsite"
SESSION_DATA_TEMPLATE = "ExtractSessionDataFromWebsite"
SESSION_LIST_TEMPLATE = "ExtractSessionListFromWebsite"

ITEM_TEMPLATES: Dict[str, str] = {"job": JOB_DATA_TEMPLATE, "session": SESSION_DATA_TEMPLATE}
LIST_TEMPLATES: Dict[str, str] = {"job": JOB_LIST_TEMPLATE, "session": SESSION_LIST_TEMPLATE}


# ---- Extraction service -------------------------------------------------------

@dataclass(frozen=True)
class ExtractionRequest:
    """
    Everything the service needs for one page.

    `template_content` (an inline template body) wins over the `template`
    name whenever it is non-blank.
    """

    url: str
    source_language: str = "en"
    target_language: str = "en"
    template: str = JOB_DATA_TEMPLATE
    template_content: Optional[str] = None
    use_cache: bool = False
    container_selector: Optional[str] = None

    def form_fields(self) -> Dict[str, str]:
        """Form body in the order the service documents it."""
        fields: Dict[str, str] = {
            "url": self.url,
            "source_language": self.source_language or "en",
            "target_language": self.target_language or "en",
        }
        if self.template_content and self.template_content.strip():
            fields["template_content"] = self.template_content.strip()
        else:
            fields["template"] = self.template or JOB_DATA_TEMPLATE
        fields["use_cache"] = "true" if self.use_cache else "false"
        if self.container_selector and self.container_selector.strip():
            fields["container_selector"] = self.container_selector.strip()
        return fields


@dataclass(frozen=True)
class ProcessInfo:
    """Diagnostics the service attaches to each response. Informational only."""

    id: Optional[str] = None
    started: Optional[str] = None
    completed: Optional[str] = None
    duration: Optional[float] = None
    is_from_cache: bool = False

    @classmethod
    def from_json(cls, raw: Any) -> Optional["ProcessInfo"]:
        if not isinstance(raw, dict):
            return None
        duration = raw.get("duration")
        return cls(
            id=str(raw["id"]) if raw.get("id") is not None else None,
            started=raw.get("started"),
            completed=raw.get("completed"),
            duration=float(duration) if isinstance(duration, (int, float)) else None,
            is_from_cache=bool(raw.get("is_from_cache", False)),
        )


@dataclass(frozen=True)
class StructuredRecord:
    """
    Untrusted output of one extraction call.

    The shape of `payload` depends on the template and nothing about it is
    guaranteed: fields may be missing, blank or carry the wrong type. Turn it
    into a `Job`/`Session` with `jobradar.pipeline.normalize`, or into links
    with `jobradar.pipeline.links`.
    """

    payload: Any
    template: str = ""
    source_url: str = ""

    def preview(self) -> Any:
        """Detached copy for display. Mutating it does not touch the record."""
        return copy.deepcopy(self.payload)


@dataclass(frozen=True)
class ExtractionResult:
    status: Literal["success", "error"]
    process: Optional[ProcessInfo] = None
    record: Optional[StructuredRecord] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success" and self.record is not None

    def require_record(self) -> StructuredRecord:
        """Return the record, or raise ServiceError if the service gave none."""
        if self.status == "error":
            raise ServiceError(self.error_message or "Extraction service reported an error", code=self.error_code)
        if self.record is None:
            raise ServiceError("Extraction service returned no structured data")
        return self.record


# ---- Persistence-ready records ------------------------------------------------

class Job(TypedDict, total=False):
    """
    A job listing ready for the sink.

    Required keys are always present and non-empty after normalization;
    everything else is omitted when the source page did not provide it.
    """

    # Required
    title: str
    company: str
    location: str
    location_region: str  # one of REGIONS, derived from location
    employment_type: str
    start_date: str
    job_type: str  # one of JOB_TYPES, derived from title/description
    phone: str
    email: str
    description: str
    has_accommodation: bool
    has_meals: bool

    # Optional text
    company_description: str
    company_website: str
    company_address: str
    full_description: str
    contract_type: str
    experience_level: str
    education: str
    contact_person: str
    contact_phone: str
    contact_email: str
    working_hours: str
    application_deadline: str
    job_reference: str
    salary: str

    # Optional lists (never stored empty)
    requirements: list[str]
    benefits: list[str]
    languages: list[str]
    certifications: list[str]
    tasks: list[str]
    offers: list[str]

    # Optional numbers (absent, never 0, when unparseable)
    salary_min: float
    salary_max: float
    number_of_positions: float

    # Page the record was extracted from; the sink upserts on it
    source_url: str


class Session(TypedDict, total=False):
    """A conference/event session ready for the sink."""

    # Required
    session: str
    filename: str
    track: str
    event: str

    # Optional
    subtitle: str
    description: str
    image_url: str
    video_url: str
    attachments_url: str
    day: str
    starttime: str
    endtime: str
    speakers: list[str]
    speakers_url: list[str]
    speakers_image_url: list[str]
    source_language: str
    target_language: str
    source_url: str


# ---- Batch orchestration -------------------------------------------------------

@dataclass(frozen=True)
class LinkDescriptor:
    """One link found on a listing page, plus where it is in the batch."""

    name: str
    url: str
    hint: str = ""  # category/track label scraped next to the link
    metadata: Mapping[str, Any] = field(default_factory=dict)
    status: LinkStatus = "pending"
    error: Optional[str] = None

    def with_status(self, status: LinkStatus, error: Optional[str] = None) -> "LinkDescriptor":
        return replace(self, status=status, error=error)


@dataclass(frozen=True)
class DiscoveredLinks:
    links: Tuple[LinkDescriptor, ...]
    event: str = ""  # list-level event name (session listings)


@dataclass(frozen=True)
class BatchSnapshot:
    """State of a batch run after one transition."""

    links: Tuple[LinkDescriptor, ...]
    progress: float = 0.0  # percent, 0-100
    succeeded: int = 0
    failed: int = 0
    cancelled: bool = False
    finished: bool = False

    @property
    def total(self) -> int:
        return len(self.links)

    @property
    def skipped(self) -> int:
        return sum(1 for link in self.links if link.status == "pending")

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed


@dataclass(frozen=True)
class BatchSummary:
    outcome: Literal["completed", "partial", "cancelled"]
    succeeded: int
    failed: int
    skipped: int
    total: int

    @classmethod
    def from_snapshot(cls, snap: BatchSnapshot) -> "BatchSummary":
        if snap.cancelled:
            outcome = "cancelled"
        elif snap.failed == 0:
            outcome = "completed"
        else:
            outcome = "partial"
        return cls(
            outcome=outcome,
            succeeded=snap.succeeded,
            failed=snap.failed,
            skipped=snap.skipped,
            total=snap.total,
        )

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def message(self) -> str:
        if self.outcome == "cancelled":
            return (
                f"Import cancelled: {self.succeeded} succeeded, {self.failed} failed, "
                f"{self.skipped} skipped"
            )
        if self.outcome == "partial":
            return f"Import finished: {self.succeeded} succeeded, {self.failed} failed"
        return f"Import finished: all {self.succeeded} succeeded"
