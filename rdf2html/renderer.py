"""
rdf2html - HTML renderer.

Turns a Graph plus the shared LinkIndex into an HTML page, and the list
of document summaries into the index page. Rendering is done with Jinja2
templates (autoescaped); this module only builds the template data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError
from rdflib.namespace import RDF, XSD

from .errors import RenderError
from ._utils import page_url
from .linker import INDEX_PAGE, LinkIndex, build_index
from .resolver import shorten
from .terms import BlankNode, Graph, Literal, Node, URIRef

logger = logging.getLogger("rdf2html.renderer")

__all__ = [
    "ANONYMOUS",
    "DocumentSummary",
    "HtmlRenderer",
    "SubjectEntry",
    "render",
    "summarize",
]

_TEMPLATE_DIR = Path(__file__).parent / "templates"

ANONYMOUS = "(anonymous)"

# Fallback prefixes for datatype annotations when the document declares none
_DATATYPE_PREFIXES = {"rdf": str(RDF), "xsd": str(XSD)}


@dataclass(frozen=True)
class SubjectEntry:
    label: str
    href: str


@dataclass(frozen=True)
class DocumentSummary:
    """One index entry: a converted document and the subjects it describes."""

    source: str
    page: str
    subjects: tuple[SubjectEntry, ...]


def _label(node: URIRef | BlankNode, graph: Graph) -> str:
    if isinstance(node, BlankNode):
        return ANONYMOUS
    return shorten(node, graph.prefixes) or str(node)


def summarize(graphs: Iterable[Graph], index: LinkIndex) -> tuple[DocumentSummary, ...]:
    """Index entries for *graphs*, ordered by source name."""
    summaries = []
    for graph in sorted(graphs, key=lambda g: g.source):
        page = index.page_for(graph.source)
        subjects = tuple(
            SubjectEntry(
                label=_label(subject, graph),
                href=f"{page_url(page)}#{index.anchor_for(graph.source, subject)}",
            )
            for subject in graph.subjects()
        )
        summaries.append(DocumentSummary(graph.source, page, subjects))
    return tuple(summaries)


class HtmlRenderer:
    """
    Renders document pages and the index page.

    Templates are loaded once from *template_dir* (the packaged templates
    by default). Renderers hold no per-page state and can be shared by
    worker threads.
    """

    def __init__(
        self,
        template_dir: Path | None = None,
        title: str = "Definitions",
        index_title: str = "Index of RDF Files",
    ) -> None:
        self._template_dir = template_dir or _TEMPLATE_DIR
        self._title = title
        self._index_title = index_title
        self._env = Environment(
            loader=FileSystemLoader(str(self._template_dir)),
            autoescape=True,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def _render(self, template_file: str, **data: Any) -> str:
        try:
            template = self._env.get_template(template_file)
            return template.render(**data)
        except TemplateError as exc:
            raise RenderError(f"cannot render {template_file}: {exc}") from exc

    # ── Term formatting ────────────────────────────────────────────────────

    def _term(self, node: Node, graph: Graph, index: LinkIndex) -> dict[str, Any]:
        if isinstance(node, Literal):
            return _literal_to_dict(node, graph)
        if isinstance(node, BlankNode):
            return {
                "kind": "bnode",
                "text": ANONYMOUS,
                "title": str(node),
                "href": index.href(node, graph.source),
                "annotation": None,
            }
        return {
            "kind": "iri",
            "text": _label(node, graph),
            "title": str(node),
            "href": index.href(node, graph.source),
            "annotation": None,
        }

    # ── Pages ──────────────────────────────────────────────────────────────

    def render_page(self, graph: Graph, index: LinkIndex) -> str:
        """Render the page for one Graph. Raises RenderError on inconsistency."""
        page = index.page_for(graph.source)
        subjects = []
        for subject, triples in graph.by_subject():
            subjects.append({
                "anchor": index.anchor_for(graph.source, subject),
                "label": _label(subject, graph),
                "iri": None if isinstance(subject, BlankNode) else str(subject),
                "rows": [
                    {
                        "predicate": self._term(t.predicate, graph, index),
                        "object": self._term(t.object, graph, index),
                    }
                    for t in triples
                ],
            })

        return self._render(
            "page.html.j2",
            title=self._title,
            source=graph.source,
            page=page,
            index_href=_index_href(page),
            prefixes=sorted(graph.prefixes.items()),
            subjects=subjects,
            triple_count=len(graph),
        )

    def render_index(self, summaries: Sequence[DocumentSummary]) -> str:
        """Render the table of contents listing every converted document."""
        entries = [
            {
                "source": s.source,
                "page": s.page,
                "href": page_url(s.page),
                "subjects": [{"label": e.label, "href": e.href} for e in s.subjects],
            }
            for s in sorted(summaries, key=lambda s: s.source)
        ]
        return self._render("index.html.j2", title=self._index_title, entries=entries)


# ── Helper converters ─────────────────────────────────────────────────────

def _literal_to_dict(literal: Literal, graph: Graph) -> dict[str, Any]:
    annotation = None
    title = None
    if literal.language:
        annotation = f"@{literal.language}"
    elif literal.datatype is not None:
        prefixes = {**_DATATYPE_PREFIXES, **graph.prefixes}
        annotation = f"^^{shorten(literal.datatype, prefixes) or literal.datatype}"
        title = str(literal.datatype)
    return {
        "kind": "literal",
        "text": str(literal),
        "title": title,
        "href": None,
        "annotation": annotation,
    }


def _index_href(page: str) -> str:
    depth = page.count("/")
    return "../" * depth + INDEX_PAGE


def render(
    graphs: Sequence[Graph],
    index: LinkIndex | None = None,
    renderer: HtmlRenderer | None = None,
) -> dict[str, str]:
    """
    Render every graph plus the index page.

    Returns ``{output page name: html}``. The LinkIndex is built from
    *graphs* when not supplied.
    """
    index = index if index is not None else build_index(graphs)
    renderer = renderer or HtmlRenderer()
    pages = {index.page_for(g.source): renderer.render_page(g, index) for g in graphs}
    pages[INDEX_PAGE] = renderer.render_index(summarize(graphs, index))
    return pages
