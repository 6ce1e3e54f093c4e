"""rdf2html - Shared utility functions."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import quote

__all__ = ["local_name", "slugify", "page_name", "page_url", "relative_href"]

_SLUG_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


def local_name(iri: str | None) -> str:
    """Extract the local name from an IRI (after # or last /).

    Falls back to the part after the last ':' for IRIs such as URNs.
    Returns "" for None.
    """
    if iri is None:
        return ""
    s = str(iri)
    if "#" in s:
        return s.rsplit("#", 1)[-1]
    if "/" in s:
        return s.rstrip("/").rsplit("/", 1)[-1]
    return s.rsplit(":", 1)[-1]


def slugify(text: str) -> str:
    """URL fragment-safe form of *text*: runs of other characters become '-'."""
    slug = _SLUG_UNSAFE.sub("-", text).strip("-")
    return slug or "resource"


def page_name(source: str) -> str:
    """Output page for a source document: ``dir/foo.ttl`` -> ``dir/foo.html``."""
    path = source.replace("\\", "/")
    root, _ = posixpath.splitext(path)
    return f"{root}.html"


def page_url(page: str) -> str:
    """Percent-encode an output page path for use in an href."""
    return quote(page, safe="/")


def relative_href(target: str, from_page: str) -> str:
    """URL of page *target* as seen from page *from_page* (both output-relative)."""
    start = posixpath.dirname(from_page) or "."
    return page_url(posixpath.relpath(target, start))
