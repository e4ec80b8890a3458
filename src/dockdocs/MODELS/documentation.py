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
Models for the documentation items extracted from a Dockerfile.
"""
from typing import List, Union
from pydantic import BaseModel, ConfigDict

from .dockerfile_ast import InstructionKind


class DocItem(BaseModel):
    """
    One documented build argument, environment variable, label or port.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    type: InstructionKind
    description: str = ""
    value: str = ""
    required: bool = False


class Documentation(BaseModel):
    """
    The ordered list of documentation items of a single Dockerfile.
    """
    items: List[DocItem] = []

    def filter_by_type(self, kind: Union[InstructionKind, str]) -> List[DocItem]:
        """
        Returns the items of one instruction type, in source order.

        Args:
            kind: Instruction type, e.g. ``"ENV"``.
        """
        value = kind.value if isinstance(kind, InstructionKind) else str(kind).upper()
        return [item for item in self.items if item.type.value == value]
