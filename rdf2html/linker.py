"""
rdf2html - Cross-document linker.

Builds the LinkIndex: where each subject is described (output page and
in-page anchor). Graphs are visited sorted by source name, so when the
same IRI is a subject in several documents the first document in that
order is its canonical link target, independent of the order in which
files were discovered or parsed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple

from rdflib import URIRef

from ._utils import local_name, page_name, page_url, relative_href, slugify
from .errors import RenderError
from .terms import BlankNode, Graph, Node, Subject

logger = logging.getLogger("rdf2html.linker")

__all__ = ["INDEX_PAGE", "Location", "LinkIndex", "build_index"]

INDEX_PAGE = "index.html"


class Location(NamedTuple):
    page: str
    anchor: str

    @property
    def href(self) -> str:
        return f"{page_url(self.page)}#{self.anchor}"


@dataclass(frozen=True)
class LinkIndex:
    """
    Read-only link map shared by every page renderer.

    ``targets`` maps an absolute IRI to its canonical Location. ``pages``
    maps a source name to its output page, ``anchors`` maps a source name
    to the anchor of every subject (blank nodes included) on that page.
    """

    targets: Mapping[URIRef, Location]
    pages: Mapping[str, str]
    anchors: Mapping[str, Mapping[Subject, str]]

    def __contains__(self, iri: object) -> bool:
        return iri in self.targets

    def __len__(self) -> int:
        return len(self.targets)

    def lookup(self, iri: URIRef) -> Location | None:
        return self.targets.get(iri)

    def page_for(self, source: str) -> str:
        try:
            return self.pages[source]
        except KeyError:
            raise RenderError(f"no output page assigned to {source!r}") from None

    def anchor_for(self, source: str, subject: Subject) -> str:
        try:
            return self.anchors[source][subject]
        except KeyError:
            raise RenderError(f"subject {subject} of {source!r} has no anchor") from None

    def href(self, node: Node, source: str) -> str | None:
        """
        Link for *node* as rendered on the page of *source*, or None.

        IRIs link to their canonical Location; blank nodes link only to
        their own section, and only on the page of the document they
        belong to.
        """
        if isinstance(node, BlankNode):
            if node.source != source:
                return None
            anchor = self.anchors.get(source, {}).get(node)
            return f"#{anchor}" if anchor else None
        if not isinstance(node, URIRef):
            return None
        location = self.targets.get(node)
        if location is None:
            return None
        current = self.page_for(source)
        if location.page == current:
            return f"#{location.anchor}"
        return f"{relative_href(location.page, current)}#{location.anchor}"


def _assign_page(source: str, taken: set[str]) -> str:
    name = page_name(source)
    if name not in taken:
        return name
    root = name[: -len(".html")]
    n = 2
    while f"{root}-{n}.html" in taken:
        n += 1
    renamed = f"{root}-{n}.html"
    logger.warning("Output page %s already taken, writing %s as %s", name, source, renamed)
    return renamed


def _anchor_base(subject: Subject) -> str:
    if isinstance(subject, BlankNode):
        return f"_anon-{subject.index}"
    return slugify(local_name(subject))


def build_index(graphs: Iterable[Graph]) -> LinkIndex:
    """
    Build the LinkIndex for a complete set of parsed graphs.

    Pure function of its input: graphs are processed sorted by source name
    and never mutated. An IRI that is a subject in several documents maps
    to the first of them in that order.
    """
    ordered = sorted(graphs, key=lambda g: g.source)

    taken: set[str] = {INDEX_PAGE}
    targets: dict[URIRef, Location] = {}
    pages: dict[str, str] = {}
    anchors: dict[str, Mapping[Subject, str]] = {}
    shared = 0

    for graph in ordered:
        if graph.source in pages:
            raise RenderError(f"duplicate source name {graph.source!r}")
        page = _assign_page(graph.source, taken)
        taken.add(page)
        pages[graph.source] = page

        used: set[str] = set()
        page_anchors: dict[Subject, str] = {}
        for subject in graph.subjects():
            base = _anchor_base(subject)
            anchor = base
            n = 2
            while anchor in used:
                anchor = f"{base}-{n}"
                n += 1
            used.add(anchor)
            page_anchors[subject] = anchor

            if isinstance(subject, URIRef):
                if subject in targets:
                    shared += 1
                else:
                    targets[subject] = Location(page, anchor)
        anchors[graph.source] = MappingProxyType(page_anchors)

    if shared:
        logger.info(
            "%d subject(s) described in more than one document; "
            "linking to the first document by source name",
            shared,
        )
    logger.debug("Link index: %d targets across %d pages", len(targets), len(pages))

    return LinkIndex(
        targets=MappingProxyType(targets),
        pages=MappingProxyType(pages),
        anchors=MappingProxyType(anchors),
    )
