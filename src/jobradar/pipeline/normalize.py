# src/jobradar/pipeline/normalize.py
"""
Turn an untrusted StructuredRecord into a Job or Session.

The extraction service is an LLM: fields go missing, come back blank, or
arrive as strings where we want lists, booleans or numbers. This module is
the only gate between that output and the sink.

Validation collects every problem before failing, so the operator reviewing
a failed import sees the full list in one go.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional

from jobradar.errors import RecordValidationError
from jobradar.models import Job, Session, StructuredRecord

# Category keywords, checked in this order against title + description.
JOB_TYPE_KEYWORDS: Dict[str, tuple[str, ...]] = {
    "dishwasher": ("dishwasher", "lavapiatti", "spül", "spüler", "spülerin"),
    "kitchen": ("kitchen", "cucina", "koch", "chef", "cook", "cuoco", "aiuto cuoco", "commis"),
    "housekeeping": ("housekeeping", "pulizie", "reinigung", "hauswirtschaft", "cleaning"),
    "helper": ("helper", "aiuto", "helfer", "assistent", "assistente"),
    "service": ("service", "servizio", "kellner", "waiter", "cameriere", "barista", "reception"),
}
JOB_TYPES = tuple(JOB_TYPE_KEYWORDS)

# City name (Italian and German) -> region. First match wins.
CITY_TO_REGION: Dict[str, str] = {
    "bolzano": "bolzano",
    "bozen": "bolzano",
    "merano": "merano",
    "meran": "merano",
    "bressanone": "bressanone",
    "brixen": "bressanone",
    "brunico": "brunico",
    "bruneck": "brunico",
    "vipiteno": "vipiteno",
    "sterzing": "vipiteno",
}
REGIONS = tuple(dict.fromkeys(CITY_TO_REGION.values()))

TRUTHY = frozenset({"true", "yes", "1", "si", "sì", "ja", "wahr", "vero"})

_JOB_REQUIRED = (
    ("title", "title"),
    ("company", "company"),
    ("location", "location"),
    ("phone", "phone"),
    ("email", "email"),
    ("description", "description"),
    ("employment_type", "employmentType"),
    ("start_date", "startDate"),
)
_JOB_OPTIONAL_TEXT = (
    ("company_description", "companyDescription"),
    ("company_website", "companyWebsite"),
    ("company_address", "companyAddress"),
    ("full_description", "fullDescription"),
    ("contract_type", "contractType"),
    ("experience_level", "experienceLevel"),
    ("education", "education"),
    ("contact_person", "contactPerson"),
    ("contact_phone", "contactPhone"),
    ("contact_email", "contactEmail"),
    ("working_hours", "workingHours"),
    ("application_deadline", "applicationDeadline"),
    ("job_reference", "jobReference"),
    ("salary", "salary"),
)
_JOB_LISTS = (
    ("requirements", "requirements"),
    ("benefits", "benefits"),
    ("languages", "languages"),
    ("certifications", "certifications"),
    ("tasks", "tasks"),
    ("offers", "offers"),
)
_JOB_NUMBERS = (
    ("salary_min", "salaryMin"),
    ("salary_max", "salaryMax"),
    ("number_of_positions", "numberOfPositions"),
)

_SESSION_OPTIONAL_TEXT = (
    "subtitle", "description", "image_url", "video_url", "attachments_url",
    "day", "starttime", "endtime",
)
_SESSION_LISTS = ("speakers", "speakers_url", "speakers_image_url")


# ---- Coercion helpers ----------------------------------------------------------

def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """First key that is present and not None (camelCase and snake_case both accepted)."""
    for k in keys:
        if k in data and data[k] is not None:
            return data[k]
    return None


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple)):
        return ""
    return str(value).strip()


def to_string_list(value: Any) -> List[str]:
    """List as-is (trimmed, blanks dropped) or split a comma-separated string."""
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return []


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return False


def to_number(value: Any) -> Optional[float]:
    """Number or numeric string; None (not 0) when it cannot be parsed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return int(s)
        except ValueError:
            pass
        try:
            parsed = float(s)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


# ---- Classifiers ----------------------------------------------------------------

def infer_job_type(title: str = "", description: str = "") -> Optional[str]:
    """Keyword match on title + description. Same input, same answer."""
    haystack = f"{title or ''} {description or ''}".lower()
    for job_type, keywords in JOB_TYPE_KEYWORDS.items():
        for keyword in keywords:
            if keyword in haystack:
                return job_type
    return None


def infer_location_region(location: str = "") -> Optional[str]:
    """
    Exact city match first, then substring in either direction.
    Ambiguous partial matches resolve to the first city in CITY_TO_REGION.
    """
    normalized = (location or "").strip().lower()
    if not normalized:
        return None
    if normalized in CITY_TO_REGION:
        return CITY_TO_REGION[normalized]
    for city, region in CITY_TO_REGION.items():
        if city in normalized or normalized in city:
            return region
    return None


def _enum_value(value: Any, allowed: tuple[str, ...]) -> Optional[str]:
    s = _text(value).lower()
    return s if s in allowed else None


# ---- Public API ----------------------------------------------------------------

def _payload(record: StructuredRecord | Mapping[str, Any]) -> Mapping[str, Any]:
    data = record.payload if isinstance(record, StructuredRecord) else record
    if not isinstance(data, Mapping):
        raise RecordValidationError(["structured data is not an object"])
    return data


def normalize_job(record: StructuredRecord | Mapping[str, Any], source_url: Optional[str] = None) -> Job:
    """
    Validate and map one job record.

    Raises RecordValidationError listing every missing or unresolvable field.
    """
    data = _payload(record)
    errors: List[str] = []
    values: Dict[str, str] = {}

    for key, camel in _JOB_REQUIRED:
        value = _text(_pick(data, camel, key))
        if not value:
            errors.append(f"{key} is required")
        values[key] = value

    region = _enum_value(_pick(data, "locationRegion", "location_region"), REGIONS)
    if region is None:
        region = infer_location_region(values["location"])
        if region is None:
            errors.append(f"location_region could not be derived from location {values['location']!r}")

    job_type = _enum_value(_pick(data, "jobType", "job_type"), JOB_TYPES)
    if job_type is None:
        job_type = infer_job_type(values["title"], values["description"])
        if job_type is None:
            errors.append("job_type could not be derived from title/description")

    if errors:
        raise RecordValidationError(errors)

    job: Job = {
        "title": values["title"],
        "company": values["company"],
        "location": values["location"],
        "location_region": region,
        "employment_type": values["employment_type"],
        "start_date": values["start_date"],
        "job_type": job_type,
        "phone": values["phone"],
        "email": values["email"],
        "description": values["description"],
        "has_accommodation": to_bool(_pick(data, "hasAccommodation", "has_accommodation")),
        "has_meals": to_bool(_pick(data, "hasMeals", "has_meals")),
    }

    for key, camel in _JOB_OPTIONAL_TEXT:
        value = _text(_pick(data, camel, key))
        if value:
            job[key] = value

    # empty lists are left out to keep stored records small
    for key, camel in _JOB_LISTS:
        items = to_string_list(_pick(data, camel, key))
        if items:
            job[key] = items

    for key, camel in _JOB_NUMBERS:
        number = to_number(_pick(data, camel, key))
        if number is not None:
            job[key] = number

    url = _text(source_url) or _text(_pick(data, "url", "sourceUrl", "source_url"))
    if url:
        job["source_url"] = url
    return job


def normalize_session(
    record: StructuredRecord | Mapping[str, Any],
    source_url: Optional[str] = None,
    *,
    event: Optional[str] = None,
    track: Optional[str] = None,
    fallback_name: Optional[str] = None,
    source_language: str = "en",
    target_language: str = "en",
) -> Session:
    """
    Validate and map one session record.

    Overrides come from the batch context: `event` (operator or listing-level
    name) beats the record's own event, a `track` label from the listing beats
    the record's track, and `fallback_name` fills a missing session title.
    """
    data = _payload(record)
    errors: List[str] = []

    values = {
        "session": _text(data.get("session")) or _text(fallback_name),
        "filename": _text(data.get("filename")),
        "track": _text(track) or _text(data.get("track")),
        "event": _text(event) or _text(data.get("event")),
    }
    for key, value in values.items():
        if not value:
            errors.append(f"{key} is required")
    if errors:
        raise RecordValidationError(errors)

    session: Session = dict(values)  # type: ignore[assignment]
    for key in _SESSION_OPTIONAL_TEXT:
        value = _text(data.get(key))
        if value:
            session[key] = value
    for key in _SESSION_LISTS:
        items = to_string_list(data.get(key))
        if items:
            session[key] = items

    language = _text(data.get("language"))
    session["source_language"] = language or source_language
    session["target_language"] = language or target_language

    url = _text(data.get("url")) or _text(source_url)
    if url:
        session["source_url"] = url
    return session


def normalize_record(
    kind: str, record: StructuredRecord, source_url: Optional[str] = None, **context: Any
) -> Job | Session:
    """Dispatch on kind ("job" or "session"). Context is only used for sessions."""
    if kind == "job":
        return normalize_job(record, source_url)
    if kind == "session":
        return normalize_session(record, source_url, **context)
    raise ValueError(f"Unknown import kind: {kind!r}")
