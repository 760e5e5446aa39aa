# tests/test_normalize.py
import pytest

from jobradar.errors import RecordValidationError
from jobradar.models import StructuredRecord
from jobradar.pipeline.normalize import (
    infer_job_type,
    infer_location_region,
    normalize_job,
    normalize_record,
    normalize_session,
    to_bool,
    to_number,
    to_string_list,
)


# ----------------------------------------------------------------------
# 1) Jobs: required fields and derived enums
# ----------------------------------------------------------------------
def test_complete_job_keeps_trimmed_values(job_payload):
    record = StructuredRecord(payload=job_payload, source_url="https://jobs.example.com/42")

    job = normalize_job(record, "https://jobs.example.com/42")

    assert job["title"] == "Aiuto cuoco (m/w/d)"
    assert job["company"] == "Hotel Post"
    assert job["location"] == "Merano"
    assert job["employment_type"] == "Seasonal"
    assert job["start_date"] == "01.05.2025"
    assert job["phone"] == "+39 0473 123456"
    assert job["email"] == "jobs@hotelpost.it"
    assert job["description"] == "Support our kitchen team during the summer season."
    assert job["location_region"] == "merano"
    assert job["job_type"] == "kitchen"
    assert job["has_accommodation"] is False
    assert job["has_meals"] is False
    assert job["source_url"] == "https://jobs.example.com/42"


def test_snake_case_input_is_accepted(job_payload):
    payload = dict(job_payload)
    payload["employment_type"] = payload.pop("employmentType")
    payload["start_date"] = payload.pop("startDate")

    job = normalize_job(payload)

    assert job["employment_type"] == "Seasonal"
    assert job["start_date"] == "01.05.2025"


def test_every_missing_field_is_reported(job_payload):
    payload = dict(job_payload, company="", phone="   ")
    del payload["email"]

    with pytest.raises(RecordValidationError) as exc:
        normalize_job(payload)

    problems = exc.value.problems
    assert "company is required" in problems
    assert "phone is required" in problems
    assert "email is required" in problems
    assert len(problems) == 3
    message = str(exc.value)
    for field in ("company", "phone", "email"):
        assert field in message


def test_unknown_city_fails_on_region(job_payload):
    with pytest.raises(RecordValidationError) as exc:
        normalize_job(dict(job_payload, location="Unknown City"))

    assert any("location_region" in p for p in exc.value.problems)


def test_unclassifiable_job_fails_on_job_type(job_payload):
    payload = dict(job_payload, title="Software engineer", description="Write code all day")

    with pytest.raises(RecordValidationError) as exc:
        normalize_job(payload)

    assert exc.value.problems == ["job_type could not be derived from title/description"]


def test_explicit_enum_values_win_when_valid(job_payload):
    payload = dict(job_payload, jobType="Service", locationRegion="BRUNICO")

    job = normalize_job(payload)

    assert job["job_type"] == "service"
    assert job["location_region"] == "brunico"


def test_invalid_explicit_enum_falls_back_to_inference(job_payload):
    job = normalize_job(dict(job_payload, jobType="manager", locationRegion="tyrol"))

    assert job["job_type"] == "kitchen"
    assert job["location_region"] == "merano"


def test_non_object_payload_is_rejected():
    with pytest.raises(RecordValidationError):
        normalize_job(StructuredRecord(payload=["not", "a", "job"]))


# ----------------------------------------------------------------------
# 2) Jobs: optional fields and coercion
# ----------------------------------------------------------------------
def test_optional_fields_are_coerced(job_payload):
    payload = dict(
        job_payload,
        requirements="German, Italian,  HACCP ",
        benefits=["Staff room", "  ", None, "Meals"],
        languages="",
        hasAccommodation="Sì",
        hasMeals="no",
        salaryMin="1800",
        salaryMax="2.100,00",
        numberOfPositions=2,
        contactPerson="  Frau Gruber ",
        workingHours="",
    )

    job = normalize_job(payload)

    assert job["requirements"] == ["German", "Italian", "HACCP"]
    assert job["benefits"] == ["Staff room", "Meals"]
    assert "languages" not in job
    assert job["has_accommodation"] is True
    assert job["has_meals"] is False
    assert job["salary_min"] == 1800
    assert "salary_max" not in job
    assert job["number_of_positions"] == 2
    assert job["contact_person"] == "Frau Gruber"
    assert "working_hours" not in job


def test_record_url_used_when_no_provenance(job_payload):
    job = normalize_job(dict(job_payload, url="https://jobs.example.com/from-record"))
    assert job["source_url"] == "https://jobs.example.com/from-record"


def test_provenance_url_wins_over_record_url(job_payload):
    job = normalize_job(dict(job_payload, url="https://elsewhere.example.com"), "https://jobs.example.com/1")
    assert job["source_url"] == "https://jobs.example.com/1"


def test_string_list_coercion_is_idempotent():
    once = to_string_list("A, B, C")
    assert once == ["A", "B", "C"]
    assert to_string_list(once) == once


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, True),
        ("true", True),
        ("YES", True),
        ("1", True),
        ("ja", True),
        ("vero", True),
        ("nein", False),
        ("", False),
        (None, False),
        (0, False),
        (1, True),
    ],
)
def test_to_bool(value, expected):
    assert to_bool(value) is expected


@pytest.mark.parametrize(
    "value, expected",
    [("12", 12), (" 12.5 ", 12.5), (3, 3), ("abc", None), ("", None), (None, None), (True, None), ("nan", None)],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


# ----------------------------------------------------------------------
# 3) Classifiers
# ----------------------------------------------------------------------
def test_job_type_is_deterministic():
    first = infer_job_type("Kellner/in gesucht", "Service im Restaurant")
    assert first == "service"
    assert all(infer_job_type("Kellner/in gesucht", "Service im Restaurant") == first for _ in range(5))


def test_keyword_order_decides_ties():
    # "dishwasher" is checked before "kitchen"
    assert infer_job_type("Dishwasher", "kitchen support") == "dishwasher"


@pytest.mark.parametrize(
    "location, region",
    [
        ("Merano", "merano"),
        ("Bozen", "bolzano"),
        ("  BRIXEN ", "bressanone"),
        ("39042 Bressanone (BZ)", "bressanone"),
        ("Meran", "merano"),
        ("Unknown City", None),
        ("", None),
    ],
)
def test_location_region(location, region):
    assert infer_location_region(location) == region


# ----------------------------------------------------------------------
# 4) Sessions
# ----------------------------------------------------------------------
def test_session_with_batch_overrides(session_payload):
    session = normalize_session(
        dict(session_payload, track=""),
        "https://event.example.com/s/1",
        event="SFSCON 2025",
        track="Developers",
        fallback_name="ignored",
        source_language="de",
        target_language="it",
    )

    assert session["event"] == "SFSCON 2025"
    assert session["track"] == "Developers"
    assert session["session"] == "Open source in public administration"
    assert session["speakers"] == ["Anna Rossi", "Max Huber"]
    assert session["source_language"] == "de"
    assert session["target_language"] == "it"
    assert session["source_url"] == "https://event.example.com/s/1"


def test_session_name_falls_back_to_link_name(session_payload):
    payload = dict(session_payload)
    del payload["session"]

    session = normalize_session(payload, fallback_name="Keynote")

    assert session["session"] == "Keynote"
    assert session["event"] == "SFSCON 2024"


def test_session_language_field_overrides_both(session_payload):
    session = normalize_session(dict(session_payload, language="it"), source_language="de", target_language="en")
    assert session["source_language"] == "it"
    assert session["target_language"] == "it"


def test_session_missing_required_fields(session_payload):
    with pytest.raises(RecordValidationError) as exc:
        normalize_session({"session": "Talk"})

    assert set(exc.value.problems) == {"filename is required", "track is required", "event is required"}


def test_normalize_record_dispatch(job_payload, session_payload):
    record = StructuredRecord(payload=session_payload)
    assert normalize_record("session", record, event="X")["event"] == "X"
    assert normalize_record("job", StructuredRecord(payload=job_payload))["title"] == "Aiuto cuoco (m/w/d)"
    with pytest.raises(ValueError):
        normalize_record("talk", record)
