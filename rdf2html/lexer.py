"""
rdf2html - Turtle tokenizer.

Turns Turtle source text into a stream of tagged tokens with 1-based
line/column positions. Escapes inside IRIs and strings are decoded here;
prefixed names are left unexpanded for the resolver.
"""

from __future__ import annotations

import enum
import re
from typing import Iterator, NamedTuple

from .errors import ParseError

__all__ = ["Token", "TokenKind", "TokenStream", "tokenize"]


class TokenKind(enum.Enum):
    PREFIX = "@prefix"
    BASE = "@base"
    SPARQL_PREFIX = "PREFIX"
    SPARQL_BASE = "BASE"
    IRIREF = "IRIREF"
    PNAME = "PNAME"
    BLANK_NODE = "BLANK_NODE_LABEL"
    STRING = "STRING"
    LANGTAG = "LANGTAG"
    DATATYPE = "^^"
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    A = "a"
    DOT = "."
    SEMICOLON = ";"
    COMMA = ","
    LBRACKET = "["
    RBRACKET = "]"
    LPAREN = "("
    RPAREN = ")"
    EOF = "EOF"


class Token(NamedTuple):
    kind: TokenKind
    value: str
    line: int
    column: int

    def describe(self) -> str:
        if self.kind is TokenKind.EOF:
            return "end of input"
        if self.kind is TokenKind.IRIREF:
            return f"<{self.value}>"
        if self.kind is TokenKind.STRING:
            return "string literal"
        return repr(self.value)


# ── Character classes (Turtle grammar productions) ─────────────────────────

_PN_CHARS_BASE = (
    "A-Za-z\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D"
    "\u037F-\u1FFF\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF"
    "\uF900-\uFDCF\uFDF0-\uFFFD\U00010000-\U000EFFFF"
)
_PN_CHARS_U = _PN_CHARS_BASE + "_"
_PN_CHARS = _PN_CHARS_U + r"\-0-9\u00B7\u0300-\u036F\u203F-\u2040"
_PLX = r"(?:%[0-9A-Fa-f]{2}|\\[_~.\-!$&'()*+,;=/?#@%])"

_PN_PREFIX = rf"[{_PN_CHARS_BASE}](?:[{_PN_CHARS}.]*[{_PN_CHARS}])?"
_PN_LOCAL = (
    rf"(?:[{_PN_CHARS_U}:0-9]|{_PLX})"
    rf"(?:(?:[{_PN_CHARS}.:]|{_PLX})*(?:[{_PN_CHARS}:]|{_PLX}))?"
)

_WS_COMMENT = re.compile(r"(?:[ \t\r\n]+|#[^\r\n]*)+")
_PNAME = re.compile(rf"(?:{_PN_PREFIX})?:(?:{_PN_LOCAL})?")
_BLANK_NODE = re.compile(rf"_:[{_PN_CHARS_U}0-9](?:[{_PN_CHARS}.]*[{_PN_CHARS}])?")
_LANGTAG = re.compile(r"@[a-zA-Z]+(?:-[a-zA-Z0-9]+)*")
_DOUBLE = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*[eE][+-]?[0-9]+|\.[0-9]+[eE][+-]?[0-9]+|[0-9]+[eE][+-]?[0-9]+)")
_DECIMAL = re.compile(r"[+-]?[0-9]*\.[0-9]+")
_INTEGER = re.compile(r"[+-]?[0-9]+")
_KEYWORD = re.compile(rf"(a|true|false)(?![{_PN_CHARS}:]|\.[{_PN_CHARS}:])")
_SPARQL_DIRECTIVE = re.compile(r"(?i:(PREFIX|BASE))(?=[ \t\r\n#<]|$)")
_AT_DIRECTIVE = re.compile(r"@(prefix|base)(?![a-zA-Z0-9-])")

# Escapes allowed inside strings (ECHAR + UCHAR) and IRIs (UCHAR only)
_STRING_ESCAPE = re.compile(r"\\(?:u([0-9A-Fa-f]{4})|U([0-9A-Fa-f]{8})|([tbnrf\"'\\]))")
_IRI_ESCAPE = re.compile(r"\\(?:u([0-9A-Fa-f]{4})|U([0-9A-Fa-f]{8}))")
_ECHAR = {"t": "\t", "b": "\b", "n": "\n", "r": "\r", "f": "\f", '"': '"', "'": "'", "\\": "\\"}
_IRI_FORBIDDEN = set('<>"{}|^`\\')
_LOCAL_ESCAPE = re.compile(r"\\([_~.\-!$&'()*+,;=/?#@%])")

_PUNCTUATION = {
    ".": TokenKind.DOT,
    ";": TokenKind.SEMICOLON,
    ",": TokenKind.COMMA,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
}


class _Cursor:
    """Position tracker over the source text."""

    def __init__(self, text: str, source: str) -> None:
        self.text = text
        self.source = source
        self.pos = 0
        self.line = 1
        self.line_start = 0

    @property
    def column(self) -> int:
        return self.pos - self.line_start + 1

    def location_of(self, pos: int) -> tuple[int, int]:
        """Line and column of an absolute offset at or after the current line start."""
        line = self.line + self.text.count("\n", self.pos, pos)
        nl = self.text.rfind("\n", 0, pos)
        start = self.line_start if nl < self.line_start else nl + 1
        return line, pos - start + 1

    def advance_to(self, pos: int) -> None:
        newlines = self.text.count("\n", self.pos, pos)
        if newlines:
            self.line += newlines
            self.line_start = self.text.rfind("\n", self.pos, pos) + 1
        self.pos = pos

    def error(self, message: str, pos: int | None = None) -> ParseError:
        if pos is None:
            line, column = self.line, self.column
        else:
            line, column = self.location_of(pos)
        return ParseError(line, column, message, source=self.source)


def _decode_codepoint(cursor: _Cursor, digits: str, pos: int) -> str:
    codepoint = int(digits, 16)
    if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        raise cursor.error(f"invalid code point U+{codepoint:X} in escape", pos)
    return chr(codepoint)


def _unescape_string(cursor: _Cursor, raw: str, offset: int) -> str:
    """Decode ECHAR/UCHAR escapes; ``offset`` is the absolute position of ``raw[0]``."""
    out: list[str] = []
    i = 0
    while True:
        j = raw.find("\\", i)
        if j < 0:
            out.append(raw[i:])
            return "".join(out)
        out.append(raw[i:j])
        m = _STRING_ESCAPE.match(raw, j)
        if m is None:
            raise cursor.error("malformed escape sequence in string literal", offset + j)
        if m.group(3) is not None:
            out.append(_ECHAR[m.group(3)])
        else:
            out.append(_decode_codepoint(cursor, m.group(1) or m.group(2), offset + j))
        i = m.end()


def _read_iriref(cursor: _Cursor) -> str:
    text = cursor.text
    start = cursor.pos
    end = text.find(">", start + 1)
    if end < 0:
        raise cursor.error("unterminated IRI reference")
    raw = text[start + 1:end]
    out: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\":
            m = _IRI_ESCAPE.match(raw, i)
            if m is None:
                raise cursor.error("malformed escape sequence in IRI", start + 1 + i)
            decoded = _decode_codepoint(cursor, m.group(1) or m.group(2), start + 1 + i)
            if decoded in _IRI_FORBIDDEN or ord(decoded) <= 0x20:
                raise cursor.error("escaped character not allowed in IRI", start + 1 + i)
            out.append(decoded)
            i = m.end()
            continue
        if ch in "\r\n":
            raise cursor.error("unterminated IRI reference")
        if ch in _IRI_FORBIDDEN or ord(ch) <= 0x20:
            raise cursor.error(f"character {ch!r} not allowed in IRI", start + 1 + i)
        out.append(ch)
        i += 1
    cursor.advance_to(end + 1)
    return "".join(out)


def _read_string(cursor: _Cursor) -> str:
    text = cursor.text
    start = cursor.pos
    quote = text[start]
    if text.startswith(quote * 3, start):
        body_start = start + 3
        i = body_start
        while True:
            j = text.find(quote * 3, i)
            if j < 0:
                raise cursor.error("unterminated long string literal")
            # Count the backslashes right before the closing quotes
            k = j
            while k > body_start and text[k - 1] == "\\":
                k -= 1
            if (j - k) % 2 == 1:
                i = j + 1
                continue
            # A run of more than three quotes closes on the last three
            while text.startswith(quote, j + 3):
                j += 1
            raw = text[body_start:j]
            value = _unescape_string(cursor, raw, body_start)
            cursor.advance_to(j + 3)
            return value

    body_start = start + 1
    i = body_start
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            raw = text[body_start:i]
            value = _unescape_string(cursor, raw, body_start)
            cursor.advance_to(i + 1)
            return value
        if ch in "\r\n":
            break
        i += 1
    raise cursor.error("unterminated string literal")


def unescape_local(local: str) -> str:
    """Drop the backslash from PN_LOCAL reserved-character escapes."""
    return _LOCAL_ESCAPE.sub(r"\1", local)


def tokenize(text: str, source: str = "<string>") -> Iterator[Token]:
    """
    Yield the tokens of a Turtle document, ending with one EOF token.

    Raises ParseError on unterminated IRIs/strings, malformed escapes and
    characters that cannot start any token.
    """
    cursor = _Cursor(text, source)
    previous: TokenKind | None = None
    length = len(text)

    while True:
        m = _WS_COMMENT.match(text, cursor.pos)
        gap = bool(m)
        if m:
            cursor.advance_to(m.end())
        if cursor.pos >= length:
            yield Token(TokenKind.EOF, "", cursor.line, cursor.column)
            return

        line, column = cursor.line, cursor.column
        ch = text[cursor.pos]
        kind: TokenKind
        value: str

        if ch == "<":
            kind, value = TokenKind.IRIREF, _read_iriref(cursor)
        elif ch in "\"'":
            kind, value = TokenKind.STRING, _read_string(cursor)
        elif ch == "@":
            if previous is TokenKind.STRING and not gap:
                m = _LANGTAG.match(text, cursor.pos)
                if m is None:
                    raise cursor.error("malformed language tag")
                kind, value = TokenKind.LANGTAG, m.group(0)[1:]
            else:
                m = _AT_DIRECTIVE.match(text, cursor.pos)
                if m is None:
                    raise cursor.error("unexpected '@'")
                kind = TokenKind.PREFIX if m.group(1) == "prefix" else TokenKind.BASE
                value = m.group(0)
            cursor.advance_to(m.end())
        elif text.startswith("^^", cursor.pos):
            kind, value = TokenKind.DATATYPE, "^^"
            cursor.advance_to(cursor.pos + 2)
        elif text.startswith("_:", cursor.pos):
            m = _BLANK_NODE.match(text, cursor.pos)
            if m is None:
                raise cursor.error("malformed blank node label")
            kind, value = TokenKind.BLANK_NODE, m.group(0)[2:]
            cursor.advance_to(m.end())
        elif ch in "+-0123456789" or (ch == "." and text[cursor.pos + 1:cursor.pos + 2].isdigit()):
            for kind, pattern in (
                (TokenKind.DOUBLE, _DOUBLE),
                (TokenKind.DECIMAL, _DECIMAL),
                (TokenKind.INTEGER, _INTEGER),
            ):
                m = pattern.match(text, cursor.pos)
                if m:
                    break
            else:
                raise cursor.error(f"unexpected character {ch!r}")
            value = m.group(0)
            cursor.advance_to(m.end())
        elif ch in _PUNCTUATION:
            kind, value = _PUNCTUATION[ch], ch
            cursor.advance_to(cursor.pos + 1)
        else:
            m = _SPARQL_DIRECTIVE.match(text, cursor.pos)
            if m:
                kind = TokenKind.SPARQL_PREFIX if m.group(1).upper() == "PREFIX" else TokenKind.SPARQL_BASE
                value = m.group(0)
            else:
                m = _KEYWORD.match(text, cursor.pos)
                if m:
                    kind = TokenKind.A if m.group(1) == "a" else TokenKind.BOOLEAN
                    value = m.group(1)
                else:
                    m = _PNAME.match(text, cursor.pos)
                    if m is None:
                        raise cursor.error(f"unexpected character {ch!r}")
                    kind, value = TokenKind.PNAME, m.group(0)
            cursor.advance_to(m.end())

        previous = kind
        yield Token(kind, value, line, column)


class TokenStream:
    """Token iterator with one token of lookahead."""

    def __init__(self, text: str, source: str = "<string>") -> None:
        self._tokens = tokenize(text, source)
        self._peeked: Token | None = None

    def peek(self) -> Token:
        if self._peeked is None:
            self._peeked = next(self._tokens)
        return self._peeked

    def next(self) -> Token:
        token = self.peek()
        if token.kind is not TokenKind.EOF:
            self._peeked = None
        return token
