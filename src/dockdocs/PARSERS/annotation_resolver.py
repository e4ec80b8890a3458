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
Resolution of magic comments into documentation items.

A magic comment is a line of the form ``# @<tag>: <value>`` written directly
above an ARG, ENV, LABEL or EXPOSE instruction::

    # @description: Port the HTTP server binds to
    # @required: true
    ENV HTTP_PORT=8080

Each tag builds its own queue. When one instruction declares several items
(``ENV A=1 B=2``, ``EXPOSE 80 443``) the Nth item takes the Nth entry of
every queue; the pairing is purely positional, never by name.
"""
import logging
import re
from collections import deque
from typing import Deque, Dict, List, Optional

from ..MODELS.dockerfile_ast import DockerfileAST, Instruction, InstructionKind
from ..MODELS.documentation import DocItem, Documentation
from .dockerfile_parser import DockerfileParser

logger = logging.getLogger(__name__)

MAGIC_TAGS = ("name", "description", "default", "required")

MAGIC_COMMENT_PATTERN = re.compile(r'^#+\s*@(name|description|default|required)\s*:(.*)$')


def parse_magic_comments(comments: List[str]) -> Dict[str, Deque[str]]:
    """
    Builds the per-tag fragment queues from a block of comment lines.

    Lines without a recognized ``@tag:`` prefix are prose and are skipped.

    :param comments: Raw comment lines, top to bottom.
    :return: One queue per magic tag, in the order the lines appear.
    """
    queues: Dict[str, Deque[str]] = {tag: deque() for tag in MAGIC_TAGS}
    for line in comments:
        match = MAGIC_COMMENT_PATTERN.match(line.strip())
        if match:
            queues[match.group(1)].append(match.group(2).strip())
    return queues


class AnnotationResolver:
    """
    Turns the instruction sequence of a Dockerfile into documentation items.
    """

    def resolve(self, ast: DockerfileAST) -> Documentation:
        """
        Resolves every instruction, preserving source order.

        :param ast: Parsed Dockerfile.
        :return: The documentation items, one per declared variable, label or port.
        """
        items: List[DocItem] = []
        for instruction in ast.instructions:
            items.extend(self.resolve_instruction(instruction))
        logger.debug("Resolved %d documentation items from %d instructions",
                     len(items), len(ast.instructions))
        return Documentation(items=items)

    def resolve_instruction(self, instruction: Instruction) -> List[DocItem]:
        """
        Builds the items declared by one instruction.

        :param instruction: The instruction and the comments above it.
        :return: One item per (key, value) pair, left to right.
        """
        queues = parse_magic_comments(instruction.preceding_comments)
        items = []

        for key, literal in instruction.raw_args:
            name = self._next(queues["name"])
            description = self._next(queues["description"])
            default = self._next(queues["default"])
            required = self._next(queues["required"])

            if instruction.kind == InstructionKind.EXPOSE:
                literal = key

            if not key and name is None:
                logger.debug("%s at line %d declares no key",
                             instruction.kind.value, instruction.position)

            items.append(DocItem(
                name=name if name is not None else key,
                type=instruction.kind,
                description=description or "",
                value=default if default is not None else (literal or ""),
                required=parse_required(required),
            ))

        # Leftover fragments are discarded
        return items

    @staticmethod
    def _next(queue: Deque[str]) -> Optional[str]:
        return queue.popleft() if queue else None


def parse_required(value: Optional[str]) -> bool:
    """
    Only an explicit ``true`` marks an item as required.
    """
    return value is not None and value.strip().lower() == "true"


def parse_dockerfile(dockerfile_path: str) -> Documentation:
    """
    Parses a Dockerfile and resolves its magic comments.

    Args:
        dockerfile_path: Path to the Dockerfile.

    Returns:
        Documentation: The ordered documentation items.

    Raises:
        DockerfileNotFoundError: If the file cannot be read.
    """
    ast = DockerfileParser().parse(dockerfile_path)
    return AnnotationResolver().resolve(ast)
