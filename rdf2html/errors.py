"""rdf2html - Error taxonomy."""

from __future__ import annotations

__all__ = [
    "Rdf2HtmlError",
    "ResolutionError",
    "ParseError",
    "RenderError",
    "ConfigError",
]


class Rdf2HtmlError(Exception):
    """Base class for every error raised by rdf2html."""


class ResolutionError(Rdf2HtmlError, ValueError):
    """A prefixed name or relative IRI could not be turned into an absolute IRI."""


class ParseError(Rdf2HtmlError, ValueError):
    """Malformed Turtle input, with the 1-based position of the offending token."""

    def __init__(self, line: int, column: int, message: str, source: str = "<string>"):
        super().__init__(f"{source}:{line}:{column}: {message}")
        self.source = source
        self.line = line
        self.column = column
        self.message = message


class RenderError(Rdf2HtmlError, RuntimeError):
    """Internal inconsistency between a Graph and the LinkIndex. Always fatal."""


class ConfigError(Rdf2HtmlError):
    """Configuration file is missing required data or cannot be read."""
