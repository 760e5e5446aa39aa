# src/jobradar/template_loader.py
"""
Load extraction templates from disk.

A local template body is sent inline (`template_content`). When no local
body exists we fall back to the template *name* and let the service use its
own copy.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from jobradar.config import PACKAGED_TEMPLATES_DIR
from jobradar.models import (
    JOB_DATA_TEMPLATE,
    JOB_LIST_TEMPLATE,
    SESSION_DATA_TEMPLATE,
    SESSION_LIST_TEMPLATE,
)

log = logging.getLogger(__name__)

KNOWN_TEMPLATES = (
    JOB_DATA_TEMPLATE,
    JOB_LIST_TEMPLATE,
    SESSION_DATA_TEMPLATE,
    SESSION_LIST_TEMPLATE,
)


def _template_path(name: str, templates_dir: Optional[Path]) -> Path:
    return Path(templates_dir or PACKAGED_TEMPLATES_DIR) / f"{name}.md"


def load_template(name: str, templates_dir: Optional[Path] = None) -> str:
    """Return the template body. Raises FileNotFoundError if there is none."""
    path = _template_path(name, templates_dir)
    return path.read_text(encoding="utf-8")


def resolve_template(name: str, templates_dir: Optional[Path] = None) -> Tuple[str, Optional[str]]:
    """
    Return (name, inline body or None).

    A missing or blank local file is not an error; the service knows the
    named templates itself.
    """
    try:
        body = load_template(name, templates_dir)
    except OSError as e:
        log.warning("Template %r not available locally (%s); sending template name instead", name, e)
        return name, None
    if not body.strip():
        log.warning("Template %r is empty; sending template name instead", name)
        return name, None
    return name, body


def available_templates(templates_dir: Optional[Path] = None) -> List[Tuple[str, bool]]:
    """Known template names and whether a local body exists for each."""
    return [(name, _template_path(name, templates_dir).is_file()) for name in KNOWN_TEMPLATES]
