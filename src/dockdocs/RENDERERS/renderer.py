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
Renders documentation and analysis results through Jinja2 templates.
"""
import json
import logging
import os
from typing import List, Optional, Sequence

import jinja2
from pydantic import BaseModel

from ..MODELS.dockerfile_ast import InstructionKind
from ..MODELS.documentation import Documentation
from ..MODELS.image_stats import SEVERITY_ORDER, ImageStats
from ..errors import TemplateError
from .builtin_templates import (
    BUILTIN_TEMPLATES,
    FORMAT_HTML,
    FORMAT_JSON,
    FORMAT_MARKDOWN,
    KIND_COMPARISON,
    KIND_IMAGE,
    export_builtin,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "default"

SEVERITY_ICONS = {
    "Critical": "🔴 ",
    "High": "🟠 ",
    "Medium": "🟡 ",
    "Low": "🔵 ",
}

BADGE_COLORS = {
    "Critical": "red",
    "High": "orange",
    "Medium": "yellow",
    "Low": "blue",
}


class RenderOptions(BaseModel):
    no_moji: bool = False
    badge_base_url: str = ""


class TemplateSelection(BaseModel):
    """
    Which template to render with: a built-in by ``name`` or a file by ``path``.
    A path wins over a name; neither means the default template.
    """
    name: Optional[str] = None
    path: Optional[str] = None

    @property
    def format(self) -> str:
        if self.path:
            return format_from_extension(self.path)
        template = BUILTIN_TEMPLATES.get(self.name or DEFAULT_TEMPLATE)
        return template.format if template else FORMAT_MARKDOWN

    @classmethod
    def from_cli(cls, value: Optional[str]) -> "TemplateSelection":
        """
        Interprets a ``--template`` value: anything containing a path
        separator or ending in ``.tmpl`` is a file, the rest are names.
        """
        if not value:
            return cls()
        if "/" in value or os.sep in value or value.endswith(".tmpl"):
            return cls(path=value)
        return cls(name=value)


def format_from_extension(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext in (".html", ".htm"):
        return FORMAT_HTML
    if ext == ".json":
        return FORMAT_JSON
    return FORMAT_MARKDOWN


# Filters

def _md_cell(value) -> str:
    text = "" if value is None else str(value)
    return text.replace("|", "\\|").replace("\r", "").replace("\n", "<br>")


def _code(value) -> str:
    text = _md_cell(value)
    if not text:
        return "-"
    return f"`{text}`"


def _required_mark(required: bool, no_moji: bool = False) -> str:
    if no_moji:
        return "Yes" if required else "No"
    return "✅" if required else "❌"


def _severity_icon(severity: str, no_moji: bool = False) -> str:
    if no_moji:
        return ""
    return SEVERITY_ICONS.get(severity, "⚪ ")


def _badge(count: int, label: str, base_url: str) -> str:
    color = BADGE_COLORS.get(label, "lightgrey") if count else "brightgreen"
    url = f"{base_url.rstrip('/')}/{label}-{count}-{color}"
    return f"![{label}]({url})"


def _pretty_json(value) -> str:
    return json.dumps(value, indent=2, default=str)


def _build_environment(output_format: str) -> jinja2.Environment:
    env = jinja2.Environment(
        autoescape=output_format == FORMAT_HTML,
        keep_trailing_newline=True,
    )
    env.filters["md_cell"] = _md_cell
    env.filters["code"] = _code
    env.filters["required_mark"] = _required_mark
    env.filters["severity_icon"] = _severity_icon
    env.filters["badge"] = _badge
    env.filters["pretty_json"] = _pretty_json
    return env


class TemplateLoader:
    """
    Loads built-in or file templates into Jinja2 ``Template`` objects.
    """

    def read_source(self, selection: TemplateSelection, kind: str = KIND_IMAGE) -> str:
        if selection.path:
            try:
                with open(selection.path, "r", encoding="utf-8") as f:
                    return f.read()
            except OSError as e:
                raise TemplateError(f"failed to read template {selection.path}: {e}") from e
        return export_builtin(selection.name or DEFAULT_TEMPLATE, kind)

    def load(self, selection: TemplateSelection, kind: str = KIND_IMAGE) -> jinja2.Template:
        """
        Compiles the selected template. A custom file serves both the image
        and the comparison kind.

        :raises TemplateError: If the template is unknown, unreadable or invalid.
        """
        source = self.read_source(selection, kind)
        env = _build_environment(selection.format)
        try:
            return env.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            origin = selection.path or selection.name or DEFAULT_TEMPLATE
            raise TemplateError(f"template {origin} has a syntax error on line {e.lineno}: {e.message}") from e

    def validate(self, path: str) -> None:
        """
        Checks that a template file exists and parses.

        :raises TemplateError: With the reason when it does not.
        """
        if not os.path.isfile(path):
            raise TemplateError(f"template file not found: {path}")
        self.load(TemplateSelection(path=path))


def _stats_dict(stats: Optional[ImageStats]) -> Optional[dict]:
    if stats is None:
        return None
    data = stats.model_dump(mode="json")
    data["size_mb"] = stats.size_mb
    data["total_vulnerabilities"] = stats.total_vulnerabilities
    return data


def _render(template: jinja2.Template, context: dict) -> str:
    try:
        return template.render(**context)
    except jinja2.TemplateError as e:
        raise TemplateError(f"failed to render template: {e}") from e


def render(doc: Documentation,
           stats: Optional[ImageStats] = None,
           options: Optional[RenderOptions] = None,
           selection: Optional[TemplateSelection] = None,
           loader: Optional[TemplateLoader] = None) -> str:
    """
    Renders the configuration table and, when ``stats`` is given, the image
    analysis section.

    Returns:
        str: The rendered text in the template's format.

    Raises:
        TemplateError: If the template cannot be loaded or rendered.
    """
    options = options or RenderOptions()
    selection = selection or TemplateSelection()
    template = (loader or TemplateLoader()).load(selection, KIND_IMAGE)

    context = {
        "items": doc.items,
        "args": doc.filter_by_type(InstructionKind.ARG),
        "envs": doc.filter_by_type(InstructionKind.ENV),
        "labels": doc.filter_by_type(InstructionKind.LABEL),
        "ports": doc.filter_by_type(InstructionKind.EXPOSE),
        "stats": stats,
        "image_tag": stats.image_tag if stats else "",
        "options": options,
        "severities": SEVERITY_ORDER,
        "report": {
            "items": [item.model_dump(mode="json") for item in doc.items],
            "image": _stats_dict(stats),
        },
    }
    logger.debug("Rendering %d items with template %s", len(doc.items),
                 selection.path or selection.name or DEFAULT_TEMPLATE)
    return _render(template, context)


def render_comparison(stats_list: Sequence[ImageStats],
                      options: Optional[RenderOptions] = None,
                      selection: Optional[TemplateSelection] = None,
                      labels: Optional[Sequence[str]] = None,
                      loader: Optional[TemplateLoader] = None) -> str:
    """
    Renders a side-by-side comparison of several images, in the given order.

    :param labels: Display names, parallel to ``stats_list``; the image tag
        is used where a label is missing or empty.
    """
    options = options or RenderOptions()
    selection = selection or TemplateSelection()
    template = (loader or TemplateLoader()).load(selection, KIND_COMPARISON)

    labels = list(labels or [])
    images: List[dict] = []
    for i, stats in enumerate(stats_list):
        name = labels[i] if i < len(labels) and labels[i] else stats.image_tag
        images.append({"name": name, "stats": stats})

    context = {
        "images": images,
        "options": options,
        "severities": SEVERITY_ORDER,
        "report": {
            "images": [{"name": image["name"], **_stats_dict(image["stats"])} for image in images],
        },
    }
    return _render(template, context)
