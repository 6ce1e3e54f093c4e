"""
rdf2html - Conversion pipeline.

parse (worker pool) -> link (barrier) -> render (worker pool) -> index.

The core never touches the filesystem: sources come in as a mapping of
source name to Turtle text and pages go out as a mapping of page name to
HTML. A ParseError removes that one document from the run; a RenderError
aborts the whole conversion.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import ParseError
from .linker import INDEX_PAGE, LinkIndex, build_index
from .parser import parse
from .renderer import HtmlRenderer, summarize
from .terms import Graph

logger = logging.getLogger("rdf2html.converter")

__all__ = ["ConversionResult", "convert", "parse_all"]

_DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one conversion run."""

    pages: Mapping[str, str]
    graphs: tuple[Graph, ...]
    failures: Mapping[str, ParseError]
    index: LinkIndex | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return not self.failures


def _parse_one(source: str, text: str) -> Graph | ParseError:
    try:
        return parse(text, source)
    except ParseError as exc:
        return exc


def parse_all(
    sources: Mapping[str, str],
    workers: int | None = None,
) -> tuple[tuple[Graph, ...], dict[str, ParseError]]:
    """
    Parse every source on a bounded thread pool.

    Returns the successfully parsed graphs (sorted by source name) and the
    ParseError of each failed source.
    """
    names = sorted(sources)
    graphs: list[Graph] = []
    failures: dict[str, ParseError] = {}
    if not names:
        return (), failures

    with ThreadPoolExecutor(max_workers=workers or _DEFAULT_WORKERS) as pool:
        results = pool.map(_parse_one, names, (sources[n] for n in names))
        for name, result in zip(names, results):
            if isinstance(result, ParseError):
                logger.error(
                    "Parse error in %s at line %d, column %d: %s",
                    name, result.line, result.column, result.message,
                )
                failures[name] = result
            else:
                logger.debug("Parsed %s (%d triples)", name, len(result))
                graphs.append(result)
    return tuple(graphs), failures


def convert(
    sources: Mapping[str, str],
    workers: int | None = None,
    renderer: HtmlRenderer | None = None,
) -> ConversionResult:
    """
    Convert Turtle documents to HTML pages plus ``index.html``.

    Args:
        sources: Mapping of source name (e.g. ``"vocab/a.ttl"``) to Turtle text.
        workers: Size of the worker pool used for parsing and rendering.
        renderer: Renderer to use; a default HtmlRenderer otherwise.

    Returns:
        ConversionResult with the rendered pages, parsed graphs and
        per-source parse failures.

    Raises:
        RenderError: if the graphs and the link index disagree.
    """
    renderer = renderer or HtmlRenderer()
    graphs, failures = parse_all(sources, workers)

    # Barrier: every graph exists before the index is built
    index = build_index(graphs)

    pages: dict[str, str] = {}
    if graphs:
        with ThreadPoolExecutor(max_workers=workers or _DEFAULT_WORKERS) as pool:
            rendered = pool.map(lambda g: renderer.render_page(g, index), graphs)
            for graph, html in zip(graphs, rendered):
                pages[index.page_for(graph.source)] = html
    pages[INDEX_PAGE] = renderer.render_index(summarize(graphs, index))

    logger.info(
        "Converted %d of %d documents (%d failed)",
        len(graphs), len(sources), len(failures),
    )
    return ConversionResult(
        pages=MappingProxyType(pages),
        graphs=graphs,
        failures=MappingProxyType(failures),
        index=index,
    )
