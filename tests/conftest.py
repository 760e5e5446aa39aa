# tests/conftest.py
from typing import Any, Dict, List

import pytest

from jobradar.models import ExtractionRequest, ExtractionResult, StructuredRecord


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse): no stray config from the developer's shell
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "SECRETARY_SERVICE_URL",
        "SECRETARY_SERVICE_API_KEY",
        "JOBRADAR_TIMEOUT",
        "JOBRADAR_BATCH_DELAY",
        "JOBRADAR_TEMPLATES_DIR",
        "JOBRADAR_SINK",
        "JOBRADAR_STORE_DIR",
        "JOBRADAR_SHEET_ID",
        "JOBRADAR_SERVICE_ACCOUNT",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeExtractor:
    """
    Stands in for the secretary client.
    `pages` maps URL -> payload dict/list, an ExtractionResult, or an exception to raise.
    """

    def __init__(self, pages: Dict[str, Any]):
        self.pages = pages
        self.requests: List[ExtractionRequest] = []

    def __call__(self, request: ExtractionRequest) -> ExtractionResult:
        self.requests.append(request)
        page = self.pages[request.url]
        if isinstance(page, Exception):
            raise page
        if isinstance(page, ExtractionResult):
            return page
        return ExtractionResult(
            status="success",
            record=StructuredRecord(payload=page, template=request.template, source_url=request.url),
        )

    @property
    def urls(self) -> List[str]:
        return [r.url for r in self.requests]


@pytest.fixture
def fake_extractor():
    return FakeExtractor


class SleepRecorder:
    def __init__(self, on_call=None):
        self.calls: List[float] = []
        self.on_call = on_call

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.on_call is not None:
            self.on_call(len(self.calls))


@pytest.fixture
def sleep_recorder():
    return SleepRecorder


@pytest.fixture
def job_payload() -> Dict[str, Any]:
    """A complete job record the way the service sends it (camelCase keys)."""
    return {
        "title": "  Aiuto cuoco (m/w/d) ",
        "company": "Hotel Post",
        "location": "Merano",
        "employmentType": "Seasonal",
        "startDate": "01.05.2025",
        "phone": "+39 0473 123456",
        "email": "jobs@hotelpost.it",
        "description": "Support our kitchen team during the summer season.",
    }


@pytest.fixture
def session_payload() -> Dict[str, Any]:
    return {
        "event": "SFSCON 2024",
        "session": "Open source in public administration",
        "filename": "2024_open-source-pa.md",
        "track": "Main Track",
        "speakers": "Anna Rossi, Max Huber",
        "day": "Friday",
        "starttime": "10:00",
        "endtime": "10:30",
    }
