"""
rdf2html - Convert directories of RDF Turtle documents into linked HTML pages.

Core entry points:
    parse(text, source)  -> Graph
    render(graphs)       -> {page name: html}
    convert(sources)     -> ConversionResult (parse + link + render)
"""

from .converter import ConversionResult, convert
from .errors import ConfigError, ParseError, Rdf2HtmlError, RenderError, ResolutionError
from .linker import LinkIndex, Location, build_index
from .parser import parse
from .renderer import HtmlRenderer, render
from .terms import BlankNode, Graph, Triple

__version__ = "0.1.0"

__all__ = [
    "BlankNode",
    "ConfigError",
    "ConversionResult",
    "Graph",
    "HtmlRenderer",
    "LinkIndex",
    "Location",
    "ParseError",
    "Rdf2HtmlError",
    "RenderError",
    "ResolutionError",
    "Triple",
    "build_index",
    "convert",
    "parse",
    "render",
]
