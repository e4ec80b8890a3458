# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Splices rendered documentation into an existing file between markers, and
works out where standalone html/json reports are written.
"""
import os
from typing import Tuple

from ..errors import MarkerNotFoundError

DEFAULT_MARKER = "dock-docs"
DEFAULT_OUTPUT = "README.md"

OUTPUT_EXTENSIONS = {
    "markdown": ".md",
    "html": ".html",
    "json": ".json",
}


def marker_pair(name: str = "") -> Tuple[str, str]:
    """
    Returns the begin and end markers for a section name.

    >>> marker_pair("main")
    ('<!-- BEGIN: main -->', '<!-- END: main -->')
    """
    name = name or DEFAULT_MARKER
    return f"<!-- BEGIN: {name} -->", f"<!-- END: {name} -->"


def inject(content: str, marker_name: str, rendered: str) -> str:
    """
    Replaces everything between the begin and end markers with ``rendered``.

    The markers stay in place and the rendered block sits on its own lines
    between them. Text outside the markers is returned unchanged.

    Args:
        content: Current file content.
        marker_name: Section name; empty means the default marker.
        rendered: Text to place between the markers.

    Raises:
        MarkerNotFoundError: If either marker is missing or the end marker
            comes before the begin marker.
    """
    begin, end = marker_pair(marker_name)
    start = content.find(begin)
    if start == -1:
        raise MarkerNotFoundError(marker_name or DEFAULT_MARKER)
    finish = content.find(end, start + len(begin))
    if finish == -1:
        raise MarkerNotFoundError(marker_name or DEFAULT_MARKER)

    body = rendered.strip("\n")
    return content[:start] + begin + "\n" + body + "\n" + end + content[finish + len(end):]


def has_markers(content: str, marker_name: str = "") -> bool:
    begin, end = marker_pair(marker_name)
    start = content.find(begin)
    return start != -1 and content.find(end, start + len(begin)) != -1


def is_direct_write_format(fmt: str) -> bool:
    """html and json reports are complete documents, written as their own file."""
    return fmt in ("html", "json")


def output_extension(fmt: str) -> str:
    return OUTPUT_EXTENSIONS.get(fmt, ".md")


def resolve_output_path(output: str, fmt: str) -> str:
    """
    Output path for a standalone report. An explicit non-default path is
    used as given; the default ``README.md`` takes the format's extension.
    """
    if output != DEFAULT_OUTPUT:
        return output
    return os.path.splitext(output)[0] + output_extension(fmt)


def resolve_section_output(base_output: str, marker: str, index: int, fmt: str) -> str:
    """
    Output path for a standalone config section, named after its marker or,
    failing that, its position in the config.

    >>> resolve_section_output("docs/README.md", "main", 0, "html")
    'docs/README-main.html'
    """
    directory = os.path.dirname(base_output)
    stem = os.path.splitext(os.path.basename(base_output))[0]
    suffix = f"-{marker}" if marker else f"-section{index}"
    return os.path.join(directory, stem + suffix + output_extension(fmt))
