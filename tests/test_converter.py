"""Tests for rdf2html.converter module."""

import logging

import pytest

from rdf2html.converter import convert, parse_all
from rdf2html.errors import RenderError
from rdf2html.linker import INDEX_PAGE

EX = "http://example.org/"
PREFIX = f"@prefix ex: <{EX}> .\n"


@pytest.fixture
def sources():
    return {
        "a.ttl": PREFIX + "ex:a ex:p ex:b .",
        "b.ttl": PREFIX + 'ex:b ex:q "x" .',
    }


class TestConvert:

    def test_cross_file_link(self, sources):
        result = convert(sources)
        assert result.ok
        assert set(result.pages) == {"a.html", "b.html", INDEX_PAGE}
        assert 'href="b.html#b"' in result.pages["a.html"]
        assert [g.source for g in result.graphs] == ["a.ttl", "b.ttl"]

    def test_one_malformed_file(self, sources):
        sources["broken.ttl"] = PREFIX + "ex:c ex:p ."
        result = convert(sources)
        assert not result.ok
        assert list(result.failures) == ["broken.ttl"]
        err = result.failures["broken.ttl"]
        assert (err.line, err.column) == (2, 11)
        assert "broken.html" not in result.pages
        assert "broken" not in result.pages[INDEX_PAGE]
        assert 'href="b.html#b"' in result.pages["a.html"]

    def test_failure_logged(self, sources, caplog):
        sources["broken.ttl"] = "ex:c ex:p ex:d ."
        with caplog.at_level(logging.ERROR, logger="rdf2html.converter"):
            convert(sources)
        assert "broken.ttl at line 1, column 1" in caplog.text

    def test_empty_file(self):
        result = convert({"empty.ttl": ""})
        assert result.ok
        assert "empty.html" in result.pages
        assert '<a href="empty.html">empty.html</a>' in result.pages[INDEX_PAGE]
        assert "(empty.ttl, 0 subjects)" in result.pages[INDEX_PAGE]

    def test_page_names_percent_encoded_in_links(self):
        result = convert({
            "c#.ttl": f"<{EX}b> a <{EX}T> .",
            "a.ttl": PREFIX + "ex:a ex:p ex:b .",
        })
        assert "c#.html" in result.pages
        assert 'href="c%23.html#b"' in result.pages["a.html"]
        index_html = result.pages[INDEX_PAGE]
        assert '<a href="c%23.html">c#.html</a>' in index_html
        assert 'href="c%23.html#b"' in index_html

    def test_no_sources(self):
        result = convert({})
        assert list(result.pages) == [INDEX_PAGE]
        assert result.graphs == ()

    def test_worker_count_does_not_change_output(self, sources):
        sources.update({f"extra{i}.ttl": PREFIX + f"ex:e{i} ex:p ex:a ." for i in range(10)})
        one = convert(sources, workers=1)
        many = convert(sources, workers=8)
        assert dict(one.pages) == dict(many.pages)

    def test_render_error_is_fatal(self, sources, tmp_path):
        from rdf2html.renderer import HtmlRenderer

        with pytest.raises(RenderError):
            convert(sources, renderer=HtmlRenderer(template_dir=tmp_path))


class TestParseAll:

    def test_splits_graphs_and_failures(self):
        graphs, failures = parse_all({"ok.ttl": "", "bad.ttl": "<unterminated"})
        assert [g.source for g in graphs] == ["ok.ttl"]
        assert set(failures) == {"bad.ttl"}
        assert failures["bad.ttl"].source == "bad.ttl"

    def test_empty(self):
        assert parse_all({}) == ((), {})
