# src/jobradar/pipeline/filter.py
from typing import Iterable, List, Set

from jobradar.models import LinkDescriptor


def filter_new(links: Iterable[LinkDescriptor], known_urls: Set[str]) -> List[LinkDescriptor]:
    """
    Keep only links whose URL is NOT already stored in the sink.
    Links without a URL are kept so the batch can report them as errors.
    """
    out: List[LinkDescriptor] = []
    for link in links:
        if link.url and link.url.strip() in known_urls:
            continue
        out.append(link)
    return out
