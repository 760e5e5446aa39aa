# src/jobradar/pipeline/links.py
"""
Parse a listing-page record into LinkDescriptors.

The list template may come back as a bare list or wrapped under one of a few
conventional keys; each entry may name its fields differently.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from jobradar.errors import DiscoveryError
from jobradar.models import DiscoveredLinks, LinkDescriptor, StructuredRecord

CONTAINER_KEYS = ("items", "jobs", "sessions", "links")
NAME_KEYS = ("name", "title", "job", "session")
URL_KEYS = ("url", "link", "href")
HINT_KEYS = ("category", "track", "type")

UNNAMED = "Untitled"


def _first_str(item: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for k in keys:
        value = item.get(k)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def link_from_item(item: Any) -> LinkDescriptor:
    if not isinstance(item, Mapping):
        return LinkDescriptor(name=UNNAMED, url="")

    consumed = set(NAME_KEYS) | set(URL_KEYS) | set(HINT_KEYS)
    metadata: Dict[str, Any] = {k: v for k, v in item.items() if k not in consumed}
    return LinkDescriptor(
        name=_first_str(item, NAME_KEYS) or UNNAMED,
        url=_first_str(item, URL_KEYS),
        hint=_first_str(item, HINT_KEYS),
        metadata=metadata,
    )


def _entries(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        for key in CONTAINER_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    raise DiscoveryError(
        "No link list found. Expected a list or an object with one of: " + ", ".join(CONTAINER_KEYS)
    )


def parse_link_list(record: StructuredRecord | Any) -> DiscoveredLinks:
    """
    Links in page order plus the list-level event name, if any.
    Raises DiscoveryError when nothing usable was found.
    """
    data = record.payload if isinstance(record, StructuredRecord) else record
    links = tuple(link_from_item(item) for item in _entries(data))
    if not links:
        raise DiscoveryError("The listing page contained no links")

    event = ""
    if isinstance(data, Mapping) and isinstance(data.get("event"), str):
        event = data["event"].strip()
    return DiscoveredLinks(links=links, event=event)
