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
Built-in Jinja2 templates for image and comparison reports.

Image templates receive ``items``, ``stats``, ``image_tag``, ``options``,
``severities`` and the per-type lists ``args``, ``envs``, ``labels`` and
``ports``. Comparison templates receive ``images`` (a list of
``{"name", "stats"}``), ``options`` and ``severities``. Both also get
``report``, a JSON-ready dict of the same data.
"""
from dataclasses import dataclass
from typing import Dict, List

from ..errors import TemplateError

KIND_IMAGE = "image"
KIND_COMPARISON = "comparison"

FORMAT_MARKDOWN = "markdown"
FORMAT_HTML = "html"
FORMAT_JSON = "json"


_ANALYSIS_MARKDOWN = """
{%- if stats %}

## Docker Image Analysis ({{ stats.image_tag }})

| Metric | Value |
|--------|-------|
| Size | {{ stats.size_mb }} |
| Architecture | {{ stats.architecture or "-" }}/{{ stats.os or "-" }} |
{%- if stats.supported_architectures %}
| Platforms | {{ stats.supported_architectures | join(", ") }} |
{%- endif %}
{%- if stats.os_distro %}
| Base OS | {{ stats.os_distro }} |
{%- endif %}
| Efficiency | {{ "%.1f" | format(stats.efficiency_score) }}% ({{ stats.wasted_mb }} wasted) |
| Total Layers | {{ stats.total_layers }} |
| Total Packages | {{ stats.total_packages }} |

### Security Summary
{% for severity in severities %}{{ severity | severity_icon(options.no_moji) }}{{ severity }}: {{ stats.vuln_count(severity) }}{% if not loop.last %} | {% endif %}{% endfor %}

{%- if stats.vulnerabilities %}

<details>
<summary>Vulnerabilities Details ({{ stats.vulnerabilities | length }} found)</summary>

| ID | Severity | Package | Version |
|----|----------|---------|---------|
{%- for vuln in stats.vulnerabilities %}
| {{ vuln.id | md_cell }} | {{ vuln.severity | md_cell }} | {{ vuln.package | md_cell }} | {{ vuln.version | md_cell }} |
{%- endfor %}

</details>
{%- endif %}

{%- if stats.packages %}

<details>
<summary>Packages ({{ stats.total_packages }} total)</summary>

| Package | Version |
|---------|---------|
{%- for pkg in stats.packages %}
| {{ pkg.name | md_cell }} | {{ pkg.version | md_cell }} |
{%- endfor %}

</details>
{%- else %}

*No packages detected.*
{%- endif %}
{%- if stats.warnings %}

> **Note:** some analysis tools failed:
{%- for warning in stats.warnings %}
> - {{ warning | md_cell }}
{%- endfor %}
{%- endif %}
{%- endif %}
"""

DEFAULT_IMAGE = """## Configuration
{% if items %}
| Name | Type | Description | Default | Required |
|------|------|-------------|---------|----------|
{%- for item in items %}
| {{ item.name | code }} | {{ item.type }} | {{ item.description | md_cell }} | {{ item.value | code }} | {{ item.required | required_mark(options.no_moji) }} |
{%- endfor %}
{%- else %}
*No documented configuration found.*
{%- endif %}
""" + _ANALYSIS_MARKDOWN

DEFAULT_COMPARISON = """## Docker Image Comparison

| Metric |{% for image in images %} {{ image.name }} |{% endfor %}
|--------|{% for image in images %}------|{% endfor %}
| Size |{% for image in images %} {{ image.stats.size_mb }} |{% endfor %}
| Architecture |{% for image in images %} {{ image.stats.architecture or "-" }}/{{ image.stats.os or "-" }} |{% endfor %}
| Layers |{% for image in images %} {{ image.stats.total_layers }} |{% endfor %}
| Efficiency |{% for image in images %} {{ "%.1f" | format(image.stats.efficiency_score) }}% |{% endfor %}
| Wasted |{% for image in images %} {{ image.stats.wasted_mb }} |{% endfor %}
| Packages |{% for image in images %} {{ image.stats.total_packages }} |{% endfor %}
{%- for severity in severities %}
| {{ severity | severity_icon(options.no_moji) }}{{ severity }} |{% for image in images %} {{ image.stats.vuln_count(severity) }} |{% endfor %}
{%- endfor %}
"""

MINIMAL_IMAGE = """| Name | Description | Default |
|------|-------------|---------|
{%- for item in items %}
| {{ item.name | code }} | {{ item.description | md_cell }} | {{ item.value | code }} |
{%- endfor %}
{%- if stats %}

**{{ stats.image_tag }}**: {{ stats.size_mb }}, {{ stats.total_layers }} layers, {{ stats.total_vulnerabilities }} vulnerabilities
{%- endif %}
"""

MINIMAL_COMPARISON = """| Image | Size | Vulnerabilities |
|-------|------|-----------------|
{%- for image in images %}
| {{ image.name }} | {{ image.stats.size_mb }} | {{ image.stats.total_vulnerabilities }} |
{%- endfor %}
"""

_DETAILED_SECTION = """
{%- macro item_table(title, rows) %}
{%- if rows %}

### {{ title }}

| Name | Description | Default | Required |
|------|-------------|---------|----------|
{%- for item in rows %}
| {{ item.name | code }} | {{ item.description | md_cell }} | {{ item.value | code }} | {{ item.required | required_mark(options.no_moji) }} |
{%- endfor %}
{%- endif %}
{%- endmacro -%}
"""

DETAILED_IMAGE = _DETAILED_SECTION + """# Docker Image Analysis
{%- if stats and options.badge_base_url %}

{% for severity in severities[:4] %}{{ stats.vuln_count(severity) | badge(severity, options.badge_base_url) }} {% endfor %}
{%- endif %}

## Configuration
{%- if not items %}

*No documented configuration found.*
{%- endif %}
{{- item_table("Build Arguments", args) }}
{{- item_table("Environment Variables", envs) }}
{{- item_table("Labels", labels) }}
{%- if ports %}

### Exposed Ports

| Port | Description |
|------|-------------|
{%- for item in ports %}
| {{ item.name | code }} | {{ item.description | md_cell }} |
{%- endfor %}
{%- endif %}
""" + _ANALYSIS_MARKDOWN + """
{%- if stats and stats.scan_timestamp %}

*Vulnerability scan: {{ stats.scan_timestamp.strftime("%Y-%m-%d %H:%M:%S %Z") | trim }}*
{%- endif %}
"""

DETAILED_COMPARISON = DEFAULT_COMPARISON + """
{%- for image in images %}
{%- if image.stats.vulnerabilities %}

<details>
<summary>{{ image.name }}: {{ image.stats.total_vulnerabilities }} vulnerabilities</summary>

| ID | Severity | Package | Version |
|----|----------|---------|---------|
{%- for vuln in image.stats.vulnerabilities %}
| {{ vuln.id | md_cell }} | {{ vuln.severity | md_cell }} | {{ vuln.package | md_cell }} | {{ vuln.version | md_cell }} |
{%- endfor %}

</details>
{%- endif %}
{%- endfor %}
"""

COMPACT_IMAGE = """{% for item in items -%}
- {{ item.name | code }} ({{ item.type }}){% if item.value %} = {{ item.value | code }}{% endif %}{% if item.required %} **required**{% endif %}{% if item.description %}: {{ item.description }}{% endif %}
{% endfor %}
{%- if stats %}
{{ stats.image_tag }}: {{ stats.size_mb }} | {{ stats.total_layers }} layers | {{ "%.1f" | format(stats.efficiency_score) }}% efficient | {% for severity in severities[:4] %}{{ severity[0] }}:{{ stats.vuln_count(severity) }}{% if not loop.last %} {% endif %}{% endfor %}
{%- endif %}
"""

COMPACT_COMPARISON = """{% for image in images -%}
- **{{ image.name }}**: {{ image.stats.size_mb }}, {{ image.stats.total_layers }} layers, {{ image.stats.total_vulnerabilities }} vulnerabilities
{% endfor %}
"""

_HTML_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif; margin: 2rem; color: #24292f; }
table { border-collapse: collapse; margin: 1rem 0; }
th, td { border: 1px solid #d0d7de; padding: 6px 13px; text-align: left; }
th { background: #f6f8fa; }
code { background: #eff1f3; padding: 0.1em 0.3em; border-radius: 4px; }
.sev-Critical { color: #b60205; font-weight: bold; }
.sev-High { color: #d93f0b; }
.sev-Medium { color: #b08800; }
.sev-Low { color: #0366d6; }
.warning { color: #9a6700; }
</style>
</head>
<body>
"""

HTML_IMAGE = "{% set title = 'Docker Image Documentation' %}" + _HTML_HEAD + """<h1>Docker Image Documentation</h1>
<h2>Configuration</h2>
{%- if items %}
<table>
<thead><tr><th>Name</th><th>Type</th><th>Description</th><th>Default</th><th>Required</th></tr></thead>
<tbody>
{%- for item in items %}
<tr><td><code>{{ item.name }}</code></td><td>{{ item.type }}</td><td>{{ item.description }}</td><td>{% if item.value %}<code>{{ item.value }}</code>{% endif %}</td><td>{{ "Yes" if item.required else "No" }}</td></tr>
{%- endfor %}
</tbody>
</table>
{%- else %}
<p><em>No documented configuration found.</em></p>
{%- endif %}
{%- if stats %}
<h2>Docker Image Analysis ({{ stats.image_tag }})</h2>
<table>
<tbody>
<tr><th>Size</th><td>{{ stats.size_mb }}</td></tr>
<tr><th>Architecture</th><td>{{ stats.architecture or "-" }}/{{ stats.os or "-" }}</td></tr>
{%- if stats.supported_architectures %}
<tr><th>Platforms</th><td>{{ stats.supported_architectures | join(", ") }}</td></tr>
{%- endif %}
{%- if stats.os_distro %}
<tr><th>Base OS</th><td>{{ stats.os_distro }}</td></tr>
{%- endif %}
<tr><th>Efficiency</th><td>{{ "%.1f" | format(stats.efficiency_score) }}% ({{ stats.wasted_mb }} wasted)</td></tr>
<tr><th>Total Layers</th><td>{{ stats.total_layers }}</td></tr>
<tr><th>Total Packages</th><td>{{ stats.total_packages }}</td></tr>
</tbody>
</table>
<h3>Security Summary</h3>
<p>
{%- for severity in severities %}
<span class="sev-{{ severity }}">{{ severity }}: {{ stats.vuln_count(severity) }}</span>{% if not loop.last %} | {% endif %}
{%- endfor %}
</p>
{%- if stats.vulnerabilities %}
<table>
<thead><tr><th>ID</th><th>Severity</th><th>Package</th><th>Version</th></tr></thead>
<tbody>
{%- for vuln in stats.vulnerabilities %}
<tr><td>{{ vuln.id }}</td><td class="sev-{{ vuln.severity }}">{{ vuln.severity }}</td><td>{{ vuln.package }}</td><td>{{ vuln.version }}</td></tr>
{%- endfor %}
</tbody>
</table>
{%- endif %}
{%- if stats.warnings %}
<ul class="warning">
{%- for warning in stats.warnings %}
<li>{{ warning }}</li>
{%- endfor %}
</ul>
{%- endif %}
{%- endif %}
</body>
</html>
"""

HTML_COMPARISON = "{% set title = 'Docker Image Comparison' %}" + _HTML_HEAD + """<h1>Docker Image Comparison</h1>
<table>
<thead><tr><th>Metric</th>{% for image in images %}<th>{{ image.name }}</th>{% endfor %}</tr></thead>
<tbody>
<tr><th>Size</th>{% for image in images %}<td>{{ image.stats.size_mb }}</td>{% endfor %}</tr>
<tr><th>Architecture</th>{% for image in images %}<td>{{ image.stats.architecture or "-" }}/{{ image.stats.os or "-" }}</td>{% endfor %}</tr>
<tr><th>Layers</th>{% for image in images %}<td>{{ image.stats.total_layers }}</td>{% endfor %}</tr>
<tr><th>Efficiency</th>{% for image in images %}<td>{{ "%.1f" | format(image.stats.efficiency_score) }}%</td>{% endfor %}</tr>
<tr><th>Packages</th>{% for image in images %}<td>{{ image.stats.total_packages }}</td>{% endfor %}</tr>
{%- for severity in severities %}
<tr><th class="sev-{{ severity }}">{{ severity }}</th>{% for image in images %}<td>{{ image.stats.vuln_count(severity) }}</td>{% endfor %}</tr>
{%- endfor %}
</tbody>
</table>
</body>
</html>
"""

JSON_IMAGE = """{{ report | pretty_json }}
"""

JSON_COMPARISON = JSON_IMAGE


@dataclass(frozen=True)
class BuiltinTemplate:
    """
    A template shipped with dock-docs.
    """
    name: str
    format: str
    description: str
    image: str
    comparison: str


BUILTIN_TEMPLATES: Dict[str, BuiltinTemplate] = {
    t.name: t for t in (
        BuiltinTemplate("default", FORMAT_MARKDOWN,
                        "Configuration table with image analysis", DEFAULT_IMAGE, DEFAULT_COMPARISON),
        BuiltinTemplate("minimal", FORMAT_MARKDOWN,
                        "Name, description and default only", MINIMAL_IMAGE, MINIMAL_COMPARISON),
        BuiltinTemplate("detailed", FORMAT_MARKDOWN,
                        "Tables per instruction type, badges and full listings",
                        DETAILED_IMAGE, DETAILED_COMPARISON),
        BuiltinTemplate("compact", FORMAT_MARKDOWN,
                        "One bullet per item, one-line analysis", COMPACT_IMAGE, COMPACT_COMPARISON),
        BuiltinTemplate("html", FORMAT_HTML,
                        "Standalone HTML page", HTML_IMAGE, HTML_COMPARISON),
        BuiltinTemplate("json", FORMAT_JSON,
                        "Machine-readable JSON document", JSON_IMAGE, JSON_COMPARISON),
    )
}


def list_builtin() -> List[BuiltinTemplate]:
    """Returns the built-in templates in display order."""
    return list(BUILTIN_TEMPLATES.values())


def is_builtin(name: str) -> bool:
    return name in BUILTIN_TEMPLATES


def export_builtin(name: str, kind: str = KIND_IMAGE) -> str:
    """
    Returns the source of a built-in template.

    :param name: Template name, e.g. ``default``.
    :param kind: ``image`` or ``comparison``.
    :raises TemplateError: If the template or kind is unknown.
    """
    if name not in BUILTIN_TEMPLATES:
        raise TemplateError(
            f"unknown built-in template: {name} (use 'dock-docs templates list' to see available templates)"
        )
    template = BUILTIN_TEMPLATES[name]
    if kind == KIND_IMAGE:
        return template.image
    if kind == KIND_COMPARISON:
        return template.comparison
    raise TemplateError(f"unknown template kind: {kind}")
