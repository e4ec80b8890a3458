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
Models for the dock-docs YAML configuration file.
"""
from typing import List, Optional, Union
from enum import Enum
from pydantic import BaseModel, Field, field_validator


class SectionType(str, Enum):
    """
    Kinds of documentation sections a config file can declare.
    """
    IMAGE = "image"
    COMPARISON = "comparison"


class TemplateConfig(BaseModel):
    """
    Selects either a built-in template by name or a custom template file.
    """
    name: Optional[str] = None
    path: Optional[str] = None


class TimeoutConfig(BaseModel):
    """
    Timeout budgets, in seconds, for the two classes of tool invocation.
    """
    inspect: float = Field(default=30.0, gt=0)
    scan: float = Field(default=300.0, gt=0)


class ImageEntry(BaseModel):
    """
    One image of a comparison section.
    """
    tag: str
    label: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.tag


class SectionConfig(BaseModel):
    """
    A single section rendered into the output file.
    """
    # Unknown types are kept so they can be skipped with a warning
    type: str = SectionType.IMAGE.value
    marker: str = ""
    source: Optional[str] = None
    tag: Optional[str] = None
    images: List[Union[ImageEntry, str]] = []
    template: Optional[TemplateConfig] = None

    def resolved_images(self) -> List[ImageEntry]:
        """
        Normalizes the ``images`` list, which accepts bare tags or mappings.
        """
        return [ImageEntry(tag=i) if isinstance(i, str) else i for i in self.images]


class DocsConfig(BaseModel):
    """
    Complete configuration loaded from a dock-docs YAML file.
    """
    output: str = "README.md"
    badge_base_url: str = ""
    template: Optional[TemplateConfig] = None
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    sections: List[SectionConfig] = []

    @field_validator("sections", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return value or []

    def resolve_template(self, section: SectionConfig) -> Optional[TemplateConfig]:
        """
        Returns the template for a section: its own, else the global one.
        """
        if section.template and (section.template.name or section.template.path):
            return section.template
        return self.template
