"""
rdf2html - Turtle parser.

A state machine over the token stream. Each frame on the
stack is one nesting level (the top-level statement, a ``[ ... ]``
property list or a ``( ... )`` collection) and carries its own current
subject, predicate and state:

    EXPECT_SUBJECT   -> subject term / directive / EOF
    EXPECT_PREDICATE -> verb (``a`` or IRI)
    EXPECT_OBJECT    -> object term, nested ``[`` or ``(``
    EXPECT_PUNCT     -> ``,`` ``;`` ``.`` or ``]``

Nested nodes are attached to their parent when they open, so the
parent's triple precedes the nested triples in the resulting Graph.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from types import MappingProxyType

from rdflib import Literal, URIRef
from rdflib.namespace import RDF, XSD

from .errors import ParseError, ResolutionError
from .lexer import Token, TokenKind, TokenStream
from .resolver import resolve, resolve_iri
from .terms import BlankNode, Graph, Node, Subject, Triple

logger = logging.getLogger("rdf2html.parser")

__all__ = ["parse", "ParserState", "TurtleParser"]

_IRI_TOKENS = (TokenKind.IRIREF, TokenKind.PNAME)
_NUMERIC_TYPES = {
    TokenKind.INTEGER: XSD.integer,
    TokenKind.DECIMAL: XSD.decimal,
    TokenKind.DOUBLE: XSD.double,
    TokenKind.BOOLEAN: XSD.boolean,
}


class ParserState(enum.Enum):
    EXPECT_SUBJECT = "subject"
    EXPECT_PREDICATE = "predicate"
    EXPECT_OBJECT = "object"
    EXPECT_PUNCT = "punctuation"


class FrameKind(enum.Enum):
    STATEMENT = "statement"
    PROPERTY_LIST = "property list"
    COLLECTION = "collection"


@dataclass
class _Frame:
    kind: FrameKind
    state: ParserState
    subject: Subject | None = None
    predicate: URIRef | None = None
    # Predicate list may be empty: ``[ ex:p 1 ] .``
    predicates_optional: bool = False
    # Last token was ';' (repeated and trailing ';' are legal)
    after_semicolon: bool = False
    # Collection bookkeeping: the cell the next item attaches to
    cell: BlankNode | None = None
    has_items: bool = False
    opened_at: Token | None = None


class TurtleParser:
    """Single-use parser for one Turtle document."""

    def __init__(self, text: str, source: str = "<string>", base: str | None = None) -> None:
        self.source = source
        self.base = base
        self.prefixes: dict[str, str] = {}
        self._tokens = TokenStream(text, source)
        self._triples: list[Triple] = []
        self._arena: list[str | None] = []
        self._labels: dict[str, BlankNode] = {}
        self._stack: list[_Frame] = [_Frame(FrameKind.STATEMENT, ParserState.EXPECT_SUBJECT)]

    # ── Helpers ────────────────────────────────────────────────────────────

    def _error(self, token: Token, message: str) -> ParseError:
        return ParseError(token.line, token.column, message, source=self.source)

    def _unexpected(self, token: Token, expected: str) -> ParseError:
        return self._error(token, f"unexpected {token.describe()}, expected {expected}")

    def _new_blank(self, label: str | None = None) -> BlankNode:
        node = BlankNode(self.source, len(self._arena), label)
        self._arena.append(label)
        return node

    def _labelled_blank(self, label: str) -> BlankNode:
        node = self._labels.get(label)
        if node is None:
            node = self._labels[label] = self._new_blank(label)
        return node

    def _iri(self, token: Token) -> URIRef:
        try:
            return resolve(token, self.prefixes, self.base)
        except ResolutionError as exc:
            raise self._error(token, str(exc)) from exc

    def _emit(self, subject: Subject, predicate: URIRef, obj: Node) -> None:
        self._triples.append(Triple(subject, predicate, obj))

    @property
    def _frame(self) -> _Frame:
        return self._stack[-1]

    # ── Driver ─────────────────────────────────────────────────────────────

    def parse(self) -> Graph:
        while True:
            token = self._tokens.next()
            frame = self._frame
            if token.kind is TokenKind.EOF:
                if frame.opened_at is not None:
                    opened = frame.opened_at
                    raise self._error(
                        token,
                        f"unexpected end of input, {frame.kind.value} opened at "
                        f"line {opened.line} column {opened.column} is not closed",
                    )
                if frame.state is not ParserState.EXPECT_SUBJECT:
                    raise self._error(token, "unexpected end of input inside a statement")
                break
            if frame.kind is FrameKind.COLLECTION:
                self._collection_item(frame, token)
            elif frame.state is ParserState.EXPECT_SUBJECT:
                self._subject(frame, token)
            elif frame.state is ParserState.EXPECT_PREDICATE:
                self._predicate(frame, token)
            elif frame.state is ParserState.EXPECT_OBJECT:
                self._object(frame, token)
            else:
                self._punctuation(frame, token)

        logger.debug(
            "Parsed %s: %d triples, %d prefixes, %d blank nodes",
            self.source, len(self._triples), len(self.prefixes), len(self._arena),
        )
        return Graph(
            source=self.source,
            triples=tuple(self._triples),
            prefixes=MappingProxyType(dict(self.prefixes)),
            base=self.base,
            blank_nodes=tuple(self._arena),
        )

    # ── States ─────────────────────────────────────────────────────────────

    def _subject(self, frame: _Frame, token: Token) -> None:
        kind = token.kind
        if kind in (TokenKind.PREFIX, TokenKind.SPARQL_PREFIX):
            self._prefix_directive(token)
        elif kind in (TokenKind.BASE, TokenKind.SPARQL_BASE):
            self._base_directive(token)
        elif kind in _IRI_TOKENS:
            self._set_subject(frame, self._iri(token))
        elif kind is TokenKind.BLANK_NODE:
            self._set_subject(frame, self._labelled_blank(token.value))
        elif kind is TokenKind.LBRACKET:
            node = self._new_blank()
            if self._tokens.peek().kind is TokenKind.RBRACKET:
                self._tokens.next()
                self._set_subject(frame, node)
            else:
                self._set_subject(frame, node, predicates_optional=True)
                self._open_property_list(node, token)
        elif kind is TokenKind.LPAREN:
            head = self._open_collection(token)
            self._set_subject(frame, head)
        else:
            raise self._unexpected(token, "a subject or directive")

    def _predicate(self, frame: _Frame, token: Token) -> None:
        kind = token.kind
        if kind is TokenKind.A:
            frame.predicate = RDF.type
        elif kind in _IRI_TOKENS:
            frame.predicate = self._iri(token)
        elif kind is TokenKind.SEMICOLON and frame.after_semicolon:
            return
        elif kind is TokenKind.DOT and frame.kind is FrameKind.STATEMENT and (
            frame.after_semicolon or frame.predicates_optional
        ):
            self._end_statement(frame)
            return
        elif kind is TokenKind.RBRACKET and frame.kind is FrameKind.PROPERTY_LIST and frame.after_semicolon:
            self._close_property_list()
            return
        else:
            raise self._unexpected(token, "a predicate")
        frame.after_semicolon = False
        frame.predicates_optional = False
        frame.state = ParserState.EXPECT_OBJECT

    def _object(self, frame: _Frame, token: Token) -> None:
        node = self._term(token)
        if node is None:
            raise self._unexpected(token, "an object")
        if node is not True:
            self._emit(frame.subject, frame.predicate, node)
            frame.state = ParserState.EXPECT_PUNCT

    def _punctuation(self, frame: _Frame, token: Token) -> None:
        kind = token.kind
        if kind is TokenKind.COMMA:
            frame.state = ParserState.EXPECT_OBJECT
        elif kind is TokenKind.SEMICOLON:
            frame.after_semicolon = True
            frame.state = ParserState.EXPECT_PREDICATE
        elif kind is TokenKind.DOT and frame.kind is FrameKind.STATEMENT:
            self._end_statement(frame)
        elif kind is TokenKind.RBRACKET and frame.kind is FrameKind.PROPERTY_LIST:
            self._close_property_list()
        elif frame.kind is FrameKind.PROPERTY_LIST:
            raise self._unexpected(token, "',', ';' or ']'")
        else:
            raise self._unexpected(token, "',', ';' or '.'")

    def _collection_item(self, frame: _Frame, token: Token) -> None:
        if token.kind is TokenKind.RPAREN:
            self._emit(frame.cell, RDF.rest, RDF.nil)
            self._stack.pop()
            return
        # Nested '[' / '(' attach themselves through _term
        node = self._term(token)
        if node is None:
            raise self._unexpected(token, "a collection item or ')'")
        if node is not True:
            self._add_item(frame, node)

    # ── Terms ──────────────────────────────────────────────────────────────

    def _term(self, token: Token) -> Node | bool | None:
        """
        Read an object term starting at *token*.

        Returns the node, ``True`` when a nested structure was opened and
        has already been attached to the current frame, or ``None`` when
        *token* cannot start an object.
        """
        kind = token.kind
        if kind in _IRI_TOKENS:
            return self._iri(token)
        if kind is TokenKind.BLANK_NODE:
            return self._labelled_blank(token.value)
        if kind is TokenKind.STRING:
            return self._literal(token)
        if kind in _NUMERIC_TYPES:
            return Literal(token.value, datatype=_NUMERIC_TYPES[kind], normalize=False)
        if kind is TokenKind.LBRACKET:
            node = self._new_blank()
            if self._tokens.peek().kind is TokenKind.RBRACKET:
                self._tokens.next()
                return node
            self._attach(node)
            self._open_property_list(node, token)
            return True
        if kind is TokenKind.LPAREN:
            if self._tokens.peek().kind is TokenKind.RPAREN:
                self._tokens.next()
                return RDF.nil
            frame = self._frame
            head = self._open_collection(token)
            self._attach(head, frame)
            return True
        return None

    def _literal(self, token: Token) -> Literal:
        nxt = self._tokens.peek()
        if nxt.kind is TokenKind.LANGTAG:
            self._tokens.next()
            return Literal(token.value, lang=nxt.value, normalize=False)
        if nxt.kind is TokenKind.DATATYPE:
            self._tokens.next()
            dt_token = self._tokens.next()
            if dt_token.kind not in _IRI_TOKENS:
                raise self._unexpected(dt_token, "a datatype IRI after '^^'")
            datatype = self._iri(dt_token)
            if datatype == RDF.langString:
                raise self._error(dt_token, "rdf:langString requires a language tag")
            return Literal(token.value, datatype=datatype, normalize=False)
        return Literal(token.value, normalize=False)

    # ── Structure ──────────────────────────────────────────────────────────

    def _attach(self, node: Node, frame: _Frame | None = None) -> None:
        """Hook *node* into *frame* as the next object or collection item."""
        frame = frame or self._frame
        if frame.kind is FrameKind.COLLECTION:
            self._add_item(frame, node)
        else:
            self._emit(frame.subject, frame.predicate, node)
            frame.state = ParserState.EXPECT_PUNCT

    def _add_item(self, frame: _Frame, node: Node) -> None:
        if frame.has_items:
            cell = self._new_blank()
            self._emit(frame.cell, RDF.rest, cell)
            frame.cell = cell
        frame.has_items = True
        self._emit(frame.cell, RDF.first, node)

    def _set_subject(self, frame: _Frame, subject: Subject, predicates_optional: bool = False) -> None:
        frame.subject = subject
        frame.predicate = None
        frame.after_semicolon = False
        frame.predicates_optional = predicates_optional
        frame.state = ParserState.EXPECT_PREDICATE

    def _end_statement(self, frame: _Frame) -> None:
        frame.subject = None
        frame.predicate = None
        frame.after_semicolon = False
        frame.predicates_optional = False
        frame.state = ParserState.EXPECT_SUBJECT

    def _open_property_list(self, node: BlankNode, token: Token) -> None:
        self._stack.append(_Frame(
            FrameKind.PROPERTY_LIST,
            ParserState.EXPECT_PREDICATE,
            subject=node,
            opened_at=token,
        ))

    def _close_property_list(self) -> None:
        self._stack.pop()

    def _open_collection(self, token: Token) -> URIRef | BlankNode:
        """Open ``(`` and return the node that stands for the list."""
        if self._tokens.peek().kind is TokenKind.RPAREN:
            self._tokens.next()
            return RDF.nil
        head = self._new_blank()
        self._stack.append(_Frame(
            FrameKind.COLLECTION,
            ParserState.EXPECT_OBJECT,
            cell=head,
            opened_at=token,
        ))
        return head

    # ── Directives ─────────────────────────────────────────────────────────

    def _expect_directive_end(self, directive: Token) -> None:
        if directive.kind in (TokenKind.PREFIX, TokenKind.BASE):
            end = self._tokens.next()
            if end.kind is not TokenKind.DOT:
                raise self._unexpected(end, f"'.' after {directive.value}")

    def _prefix_directive(self, directive: Token) -> None:
        name = self._tokens.next()
        if name.kind is not TokenKind.PNAME or not name.value.endswith(":") or name.value.count(":") != 1:
            raise self._unexpected(name, "a prefix label ending in ':'")
        iri_token = self._tokens.next()
        if iri_token.kind is not TokenKind.IRIREF:
            raise self._unexpected(iri_token, "a namespace IRI")
        try:
            namespace = resolve_iri(iri_token.value, self.base)
        except ResolutionError as exc:
            raise self._error(iri_token, str(exc)) from exc
        self._expect_directive_end(directive)
        label = name.value[:-1]
        if label in self.prefixes and self.prefixes[label] != namespace:
            logger.debug("%s: prefix '%s:' redeclared", self.source, label)
        self.prefixes[label] = str(namespace)

    def _base_directive(self, directive: Token) -> None:
        iri_token = self._tokens.next()
        if iri_token.kind is not TokenKind.IRIREF:
            raise self._unexpected(iri_token, "a base IRI")
        try:
            base = str(resolve_iri(iri_token.value, self.base))
        except ResolutionError as exc:
            raise self._error(iri_token, str(exc)) from exc
        self._expect_directive_end(directive)
        self.base = base


def parse(text: str, source: str = "<string>", base: str | None = None) -> Graph:
    """
    Parse a Turtle document into a Graph.

    Args:
        text: Turtle source.
        source: Name of the document (used for blank-node scoping and errors).
        base: Initial base IRI for relative references, if any.

    Raises:
        ParseError: on any syntax error or unresolvable IRI.
    """
    return TurtleParser(text, source, base).parse()
