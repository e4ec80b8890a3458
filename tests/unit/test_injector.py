import os

import pytest

from dockdocs.UTILS.injector import (
    has_markers,
    inject,
    is_direct_write_format,
    marker_pair,
    resolve_output_path,
    resolve_section_output,
)
from dockdocs.errors import MarkerNotFoundError

README = """# My App

Intro text.

<!-- BEGIN: dock-docs -->
old content
<!-- END: dock-docs -->

Footer  with  odd   spacing\r\n"""


def test_inject_replaces_between_markers():
    result = inject(README, "", "## Configuration\n\nnew table\n")
    assert result == """# My App

Intro text.

<!-- BEGIN: dock-docs -->
## Configuration

new table
<!-- END: dock-docs -->

Footer  with  odd   spacing\r\n"""


def test_inject_is_idempotent():
    once = inject(README, "", "table")
    assert inject(once, "", "table") == once


def test_named_markers():
    content = "a\n<!-- BEGIN: main -->\n<!-- END: main -->\nb\n<!-- BEGIN: compare -->x<!-- END: compare -->\n"
    result = inject(content, "compare", "cmp")
    result = inject(result, "main", "img")
    assert result == "a\n<!-- BEGIN: main -->\nimg\n<!-- END: main -->\nb\n<!-- BEGIN: compare -->\ncmp\n<!-- END: compare -->\n"


@pytest.mark.parametrize("content", [
    "no markers here",
    "<!-- BEGIN: dock-docs -->\nonly begin",
    "<!-- END: dock-docs -->\n<!-- BEGIN: dock-docs -->\n",
])
def test_missing_markers(content):
    with pytest.raises(MarkerNotFoundError) as excinfo:
        inject(content, "", "x")
    assert excinfo.value.marker == "dock-docs"
    assert not has_markers(content)


def test_marker_pair_default():
    assert marker_pair() == ("<!-- BEGIN: dock-docs -->", "<!-- END: dock-docs -->")


def test_resolve_output_path():
    assert resolve_output_path("README.md", "html") == "README.html"
    assert resolve_output_path("README.md", "json") == "README.json"
    assert resolve_output_path("docs/report.html", "html") == "docs/report.html"


def test_resolve_section_output():
    base = os.path.join("docs", "README.md")
    assert resolve_section_output(base, "main", 0, "html") == os.path.join("docs", "README-main.html")
    assert resolve_section_output(base, "", 2, "json") == os.path.join("docs", "README-section2.json")


def test_direct_write_formats():
    assert is_direct_write_format("html")
    assert is_direct_write_format("json")
    assert not is_direct_write_format("markdown")
