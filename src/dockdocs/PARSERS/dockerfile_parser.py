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
Parsers for Dockerfiles, extracting documentable instructions together with
the comment block written directly above each of them.
"""
import logging
import re
import shlex
from typing import List, Optional, Tuple

from ..MODELS.dockerfile_ast import DockerfileAST, Instruction, InstructionKind
from ..errors import DockerfileNotFoundError

logger = logging.getLogger(__name__)

Pair = Tuple[str, Optional[str]]

DIRECTIVE_PATTERN = re.compile(r'^#\s*([a-zA-Z][a-zA-Z0-9]*)\s*=\s*(.+?)\s*$')
INSTRUCTION_PATTERN = re.compile(r'^\s*([A-Za-z]+)(?:\s+(.*))?$')
HEREDOC_PATTERN = re.compile(r'<<-?\s*["\']?([A-Za-z_][A-Za-z0-9_]*)["\']?')

KNOWN_DIRECTIVES = {"syntax", "escape", "check"}


class DockerfileParser:
    """
    Parser for Dockerfile instructions.
    """
    def parse(self, dockerfile_path: str) -> DockerfileAST:
        """
        Parses a Dockerfile from a file path.

        Args:
            dockerfile_path (str): Path to the Dockerfile.

        Returns:
            DockerfileAST: The flattened instruction sequence.

        Raises:
            DockerfileNotFoundError: If the file cannot be read.
        """
        try:
            with open(dockerfile_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise DockerfileNotFoundError(f"cannot read Dockerfile {dockerfile_path}: {e}") from e
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> DockerfileAST:
        """
        Parses a Dockerfile from a string content.

        Args:
            content (str): Content of the Dockerfile.

        Returns:
            DockerfileAST: The flattened instruction sequence.
        """
        lines = content.splitlines()
        escape = '\\'
        instructions: List[Instruction] = []
        pending_comments: List[str] = []
        stages = 0
        in_preamble = True
        i = 0

        while i < len(lines):
            line = lines[i]
            stripped = line.strip()
            line_no = i + 1
            i += 1

            if not stripped:
                # Only the contiguous block directly above an instruction counts
                pending_comments = []
                in_preamble = False
                continue

            if stripped.startswith('#'):
                if in_preamble:
                    directive = DIRECTIVE_PATTERN.match(stripped)
                    if directive and directive.group(1).lower() in KNOWN_DIRECTIVES:
                        if directive.group(1).lower() == "escape" and directive.group(2) in ('\\', '`'):
                            escape = directive.group(2)
                        continue
                in_preamble = False
                pending_comments.append(stripped)
                continue

            in_preamble = False
            text, i = self._join_continuations(line, lines, i, escape)

            match = INSTRUCTION_PATTERN.match(text)
            comments, pending_comments = pending_comments, []
            if not match:
                logger.debug("Skipping unrecognized line %d: %s", line_no, stripped)
                continue

            keyword = match.group(1).upper()
            args_str = (match.group(2) or "").strip()

            if keyword == "FROM":
                stages += 1
                continue

            heredoc = HEREDOC_PATTERN.search(args_str) if keyword in ("RUN", "COPY", "ADD") else None
            if heredoc:
                i = self._skip_heredoc(lines, i, heredoc.group(1))
                continue

            if keyword not in InstructionKind.__members__:
                continue

            kind = InstructionKind(keyword)
            instructions.append(Instruction(
                kind=kind,
                raw_args=self._split_arguments(kind, args_str, escape),
                preceding_comments=comments,
                position=line_no,
                stage=max(stages - 1, 0),
                raw=text.strip(),
            ))

        return DockerfileAST(instructions=instructions, stages=stages)

    @staticmethod
    def _join_continuations(line: str, lines: List[str], i: int, escape: str) -> Tuple[str, int]:
        """
        Joins an instruction spread over several lines with the escape character.
        Blank lines and comment lines inside a continued instruction are dropped.
        """
        parts = []
        current = line.rstrip()
        while current.endswith(escape):
            parts.append(current[:-1])
            current = ""
            while i < len(lines):
                candidate = lines[i].rstrip()
                i += 1
                if candidate.strip() and not candidate.strip().startswith('#'):
                    current = candidate
                    break
        parts.append(current)
        return ' '.join(p.strip() for p in parts if p.strip()), i

    @staticmethod
    def _skip_heredoc(lines: List[str], i: int, terminator: str) -> int:
        while i < len(lines):
            if lines[i].strip() == terminator:
                return i + 1
            i += 1
        return i

    def _split_arguments(self, kind: InstructionKind, args_str: str, escape: str = '\\') -> List[Pair]:
        """
        Splits the raw arguments of an instruction into (key, value) pairs.
        """
        if not args_str:
            return [("", None)]

        if kind == InstructionKind.EXPOSE:
            return [(token, token) for token in args_str.split()]

        if kind == InstructionKind.ARG:
            pairs = []
            for token in self._tokenize(args_str, escape):
                if '=' in token:
                    key, value = token.split('=', 1)
                    pairs.append((key, value))
                else:
                    pairs.append((token, None))
            return pairs or [("", None)]

        # ENV and LABEL share the KEY=VALUE form and the legacy "KEY VALUE" form
        first = args_str.split(None, 1)
        if '=' not in first[0]:
            key = first[0]
            value = self._unquote(first[1].strip()) if len(first) > 1 else None
            return [(self._unquote(key), value)]

        pairs = []
        for token in self._tokenize(args_str, escape):
            if '=' in token:
                key, value = token.split('=', 1)
                pairs.append((key, value))
            else:
                pairs.append((token, None))
        return pairs or [("", None)]

    @staticmethod
    def _tokenize(args_str: str, escape: str = '\\') -> List[str]:
        """
        Shell-style split honouring quotes and the active escape character;
        falls back to whitespace on unbalanced quotes.
        """
        lexer = shlex.shlex(args_str, posix=True)
        lexer.whitespace_split = True
        lexer.commenters = ''
        lexer.escape = escape
        try:
            return list(lexer)
        except ValueError:
            logger.debug("Unbalanced quotes in arguments: %s", args_str)
            return args_str.split()

    @staticmethod
    def _unquote(value: str) -> str:
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            return value[1:-1]
        return value
