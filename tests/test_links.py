# tests/test_links.py
import pytest

from jobradar.errors import DiscoveryError
from jobradar.models import LinkDescriptor, StructuredRecord
from jobradar.pipeline.filter import filter_new
from jobradar.pipeline.links import UNNAMED, link_from_item, parse_link_list


def test_bare_list():
    found = parse_link_list(
        [
            {"name": "Koch", "url": "https://jobs.example.com/1", "category": "Kitchen"},
            {"title": "Kellner", "link": "https://jobs.example.com/2"},
        ]
    )

    assert [link.name for link in found.links] == ["Koch", "Kellner"]
    assert [link.url for link in found.links] == ["https://jobs.example.com/1", "https://jobs.example.com/2"]
    assert found.links[0].hint == "Kitchen"
    assert all(link.status == "pending" for link in found.links)
    assert found.event == ""


@pytest.mark.parametrize("key", ["items", "jobs", "sessions", "links"])
def test_wrapped_list(key):
    record = StructuredRecord(payload={key: [{"name": "A", "href": "https://a.example.com"}]})

    found = parse_link_list(record)

    assert found.links == (LinkDescriptor(name="A", url="https://a.example.com"),)


def test_session_listing_with_event_and_track():
    payload = {
        "event": " SFSCON 2024 ",
        "sessions": [
            {"session": "Opening", "url": "https://sfscon.example.com/opening", "track": "Main", "room": "A1"},
        ],
    }

    found = parse_link_list(payload)

    (link,) = found.links
    assert found.event == "SFSCON 2024"
    assert link.name == "Opening"
    assert link.hint == "Main"
    assert link.metadata == {"room": "A1"}


def test_entry_without_name_or_url():
    link = link_from_item({"category": "Service"})
    assert link.name == UNNAMED
    assert link.url == ""
    assert link_from_item("just a string").name == UNNAMED


@pytest.mark.parametrize("payload", [[], {"items": []}, {"foo": "bar"}, "nothing", None])
def test_nothing_usable_raises(payload):
    with pytest.raises(DiscoveryError):
        parse_link_list(payload)


def test_filter_new_drops_known_urls():
    links = [
        LinkDescriptor(name="A", url="https://jobs.example.com/1"),
        LinkDescriptor(name="B", url="https://jobs.example.com/2"),
        LinkDescriptor(name="C", url=""),
    ]

    kept = filter_new(links, {"https://jobs.example.com/1"})

    assert [link.name for link in kept] == ["B", "C"]
