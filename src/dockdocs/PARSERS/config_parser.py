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
Parsers for dock-docs YAML configuration files.
"""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..MODELS.docs_config import DocsConfig, SectionConfig, TemplateConfig
from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "dock-docs.yaml"


class ConfigParser:
    """
    Parser for dock-docs.yaml files.
    """
    def parse(self, config_path: str) -> DocsConfig:
        """
        Parses a config file from a path. Relative paths inside the file are
        resolved against the directory holding it.

        :param config_path: Path to the config file.
        :return: Parsed configuration.
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"failed to read config file {config_path}: {e}") from e

        base_dir = os.path.dirname(os.path.abspath(config_path))
        return self.parse_from_string(content, base_dir=base_dir)

    def parse_from_string(self, content: str, base_dir: Optional[str] = None) -> DocsConfig:
        """
        Parses a config file from a string.

        :param content: YAML content of the config file.
        :param base_dir: Directory relative paths are resolved against.
        :return: Parsed configuration.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in config file: {e}") from e

        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("config file must contain a mapping at the top level")

        try:
            config = DocsConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"invalid config file: {e}") from e

        if base_dir:
            config = self._resolve_paths(config, base_dir)
        return config

    def _resolve_paths(self, config: DocsConfig, base_dir: str) -> DocsConfig:
        """
        Rewrites relative output, source and template paths as absolute ones.

        :param config: The parsed configuration.
        :param base_dir: The directory of the config file.
        :return: A configuration with absolute paths.
        """
        updates: Dict[str, Any] = {"output": self._join(base_dir, config.output)}
        if config.template:
            updates["template"] = self._resolve_template(config.template, base_dir)

        sections = []
        for section in config.sections:
            section_updates: Dict[str, Any] = {}
            if section.source:
                section_updates["source"] = self._join(base_dir, section.source)
            if section.template:
                section_updates["template"] = self._resolve_template(section.template, base_dir)
            sections.append(section.model_copy(update=section_updates))
        updates["sections"] = sections

        return config.model_copy(update=updates)

    def _resolve_template(self, template: TemplateConfig, base_dir: str) -> TemplateConfig:
        if not template.path:
            return template
        return template.model_copy(update={"path": self._join(base_dir, template.path)})

    @staticmethod
    def _join(base_dir: str, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(base_dir, path))


def source_for(section: SectionConfig, base_dir: str) -> str:
    """
    Dockerfile path of an image section, defaulting to ``Dockerfile``.
    """
    if section.source:
        return section.source
    return os.path.join(base_dir, "Dockerfile")
