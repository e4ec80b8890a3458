import os

import pytest

from dockdocs.MODELS.docs_config import ImageEntry, SectionConfig, TemplateConfig
from dockdocs.PARSERS.config_parser import ConfigParser, source_for
from dockdocs.errors import ConfigError

CONFIG = """
output: docs/README.md
badge_base_url: https://img.shields.io/badge
template:
  name: default
timeouts:
  inspect: 10
  scan: 120
sections:
  - type: image
    marker: main
    source: app/Dockerfile
    tag: my-app:latest
    template:
      name: detailed
  - type: comparison
    marker: compare
    images:
      - alpine:3.19
      - tag: debian:12
        label: Debian
    template:
      path: templates/compare.tmpl
"""


def test_parse_file(tmp_path):
    config_file = tmp_path / "dock-docs.yaml"
    config_file.write_text(CONFIG)

    config = ConfigParser().parse(str(config_file))

    assert config.output == os.path.join(str(tmp_path), "docs", "README.md")
    assert config.badge_base_url == "https://img.shields.io/badge"
    assert config.timeouts.inspect == 10
    assert config.timeouts.scan == 120

    image, comparison = config.sections
    assert image.type == "image"
    assert image.source == os.path.join(str(tmp_path), "app", "Dockerfile")
    assert image.tag == "my-app:latest"
    assert config.resolve_template(image).name == "detailed"

    assert comparison.resolved_images() == [
        ImageEntry(tag="alpine:3.19"),
        ImageEntry(tag="debian:12", label="Debian"),
    ]
    assert [e.display_name for e in comparison.resolved_images()] == ["alpine:3.19", "Debian"]
    assert comparison.template.path == os.path.join(str(tmp_path), "templates", "compare.tmpl")


def test_defaults():
    config = ConfigParser().parse_from_string("sections:\n")
    assert config.output == "README.md"
    assert config.sections == []
    assert config.timeouts.inspect == 30
    assert config.timeouts.scan == 300


def test_global_template_fallback():
    config = ConfigParser().parse_from_string("template: {name: compact}\nsections:\n  - marker: a\n")
    section = config.sections[0]
    assert section.type == "image"
    assert config.resolve_template(section) == TemplateConfig(name="compact")


def test_unknown_section_type_is_kept():
    config = ConfigParser().parse_from_string("sections:\n  - type: chart\n")
    assert config.sections[0].type == "chart"


@pytest.mark.parametrize("content", [
    "output: [unclosed",
    "- just\n- a list\n",
    "timeouts: {inspect: -1}\n",
    "sections:\n  - images: [{label: no tag}]\n",
])
def test_invalid_config(content):
    with pytest.raises(ConfigError):
        ConfigParser().parse_from_string(content)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        ConfigParser().parse(str(tmp_path / "dock-docs.yaml"))


def test_source_for_defaults_to_dockerfile(tmp_path):
    assert source_for(SectionConfig(), str(tmp_path)) == os.path.join(str(tmp_path), "Dockerfile")
    assert source_for(SectionConfig(source="/abs/Dockerfile"), str(tmp_path)) == "/abs/Dockerfile"
