"""
rdf2html - IRI and prefix resolution.

Expands prefixed names against a document's prefix map and resolves
relative IRI references against the current base (RFC 3986, section 5.2).
Also provides the reverse operation used for display: shortening an
absolute IRI into its prefixed form.
"""

from __future__ import annotations

import re
from typing import Mapping
from urllib.parse import urlsplit, urlunsplit

from rdflib import URIRef

from .errors import ResolutionError
from .lexer import Token, TokenKind, unescape_local

__all__ = ["resolve", "resolve_iri", "expand_pname", "shorten", "is_absolute"]

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
# Local names we are willing to print unescaped after a prefix
_SAFE_LOCAL = re.compile(r"^(?:[A-Za-z0-9_]|[A-Za-z0-9_][A-Za-z0-9_.\-]*[A-Za-z0-9_\-])?$")


def is_absolute(iri: str) -> bool:
    return bool(_SCHEME.match(iri))


def _remove_dot_segments(path: str) -> str:
    output: list[str] = []
    while path:
        if path.startswith("../"):
            path = path[3:]
        elif path.startswith("./"):
            path = path[2:]
        elif path.startswith("/./"):
            path = path[2:]
        elif path == "/.":
            path = "/"
        elif path.startswith("/../"):
            path = path[3:]
            if output:
                output.pop()
        elif path == "/..":
            path = "/"
            if output:
                output.pop()
        elif path in (".", ".."):
            path = ""
        else:
            start = 1 if path.startswith("/") else 0
            cut = path.find("/", start)
            if cut < 0:
                cut = len(path)
            output.append(path[:cut])
            path = path[cut:]
    return "".join(output)


def _merge(base_path: str, base_has_authority: bool, ref_path: str) -> str:
    if base_has_authority and not base_path:
        return "/" + ref_path
    return base_path[: base_path.rfind("/") + 1] + ref_path


def resolve_iri(ref: str, base: str | None) -> URIRef:
    """
    Resolve an IRI reference against *base*.

    Absolute references are returned unchanged. Raises ResolutionError when
    *ref* is relative and there is no usable (absolute) base.
    """
    if is_absolute(ref):
        return URIRef(ref)
    if base is None:
        raise ResolutionError(f"relative IRI <{ref}> used without a base IRI")
    if not is_absolute(base):
        raise ResolutionError(f"cannot resolve <{ref}> against relative base <{base}>")

    b = urlsplit(base)
    r = urlsplit(ref)
    has_query = "?" in ref.split("#", 1)[0]
    has_fragment = "#" in ref

    if ref.startswith("//"):
        netloc, path, query = r.netloc, _remove_dot_segments(r.path), r.query
    elif not r.path:
        netloc, path = b.netloc, b.path
        query = r.query if has_query else b.query
    elif r.path.startswith("/"):
        netloc, path, query = b.netloc, _remove_dot_segments(r.path), r.query
    else:
        netloc = b.netloc
        path = _remove_dot_segments(_merge(b.path, bool(b.netloc), r.path))
        query = r.query

    resolved = urlunsplit((b.scheme, netloc, path, query, r.fragment))
    # urlunsplit drops empty "?" and "#" markers
    if has_query and not query and "?" not in resolved:
        head, sep, tail = resolved.partition("#")
        resolved = f"{head}?{sep}{tail}"
    if has_fragment and not r.fragment and not resolved.endswith("#"):
        resolved += "#"
    return URIRef(resolved)


def expand_pname(pname: str, prefixes: Mapping[str, str]) -> URIRef:
    """Expand ``prefix:local`` using *prefixes*. Raises ResolutionError if undeclared."""
    label, _, local = pname.partition(":")
    try:
        namespace = prefixes[label]
    except KeyError:
        raise ResolutionError(f"undeclared prefix '{label}:'") from None
    return URIRef(namespace + unescape_local(local))


def resolve(token: Token, prefixes: Mapping[str, str], base: str | None) -> URIRef:
    """Turn an IRIREF or prefixed-name token into an absolute IRI."""
    if token.kind is TokenKind.IRIREF:
        return resolve_iri(token.value, base)
    if token.kind is TokenKind.PNAME:
        return expand_pname(token.value, prefixes)
    raise ResolutionError(f"token {token.describe()} does not denote an IRI")


def shorten(iri: str, prefixes: Mapping[str, str]) -> str | None:
    """
    Return ``prefix:local`` for *iri* if a namespace in *prefixes* covers it.

    The longest matching namespace wins; ties go to the shortest label. Only
    local names that read back without escaping are accepted.
    """
    best: tuple[int, str, str] | None = None
    for label, namespace in prefixes.items():
        if not namespace or not iri.startswith(namespace):
            continue
        local = iri[len(namespace):]
        if not _SAFE_LOCAL.match(local):
            continue
        candidate = (len(namespace), label, local)
        if best is None or candidate[0] > best[0] or (
            candidate[0] == best[0] and len(label) < len(best[1])
        ):
            best = candidate
    if best is None:
        return None
    return f"{best[1]}:{best[2]}"
