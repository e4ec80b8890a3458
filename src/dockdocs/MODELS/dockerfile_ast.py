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
Models for the Dockerfile Abstract Syntax Tree.
"""
from typing import List, Optional, Tuple
from enum import Enum
from pydantic import BaseModel, ConfigDict


class InstructionKind(str, Enum):
    """
    Dockerfile instructions that produce documentation items.
    """
    ARG = "ARG"
    ENV = "ENV"
    LABEL = "LABEL"
    EXPOSE = "EXPOSE"

    def __str__(self) -> str:
        return self.value


class Instruction(BaseModel):
    """
    Represents a single documentable instruction in a Dockerfile.

    ``raw_args`` holds the declared (key, value) pairs in source order;
    ``preceding_comments`` is the contiguous comment block directly above
    the instruction, as written.
    """
    model_config = ConfigDict(frozen=True)

    kind: InstructionKind
    raw_args: List[Tuple[str, Optional[str]]] = []
    preceding_comments: List[str] = []
    position: int
    stage: int = 0
    raw: str = ""


class DockerfileAST(BaseModel):
    """
    Represents the flattened instruction sequence of a Dockerfile.
    Instructions of every build stage appear in source order.
    """
    instructions: List[Instruction] = []
    stages: int = 0
