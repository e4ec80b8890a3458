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
Common interface of the external inspection tools.

An adapter knows how to find its binary, invoke it with a timeout and
translate the tool's JSON into a partial ``ImageStats``. Anything that goes
wrong while running surfaces as a ``ToolExecutionError``; an adapter never
returns half-parsed data.
"""
import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from ..MODELS.image_stats import ImageStats
from ..RUNNERS.process_runner import detect_runtime, lookup_tool
from ..errors import OutputParseError, ToolNotFoundError

# Timeout budgets, in seconds
TIMEOUT_INSPECT = 30.0
TIMEOUT_SCAN = 300.0


class ToolAdapter(ABC):
    """
    Uniform wrapper around one external inspection binary.
    """
    timeout: float = TIMEOUT_INSPECT

    def __init__(self):
        self.binary: Optional[str] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name used in logs and warnings."""

    @abstractmethod
    def is_available(self) -> bool:
        """
        Checks whether the tool is installed. Must not run the tool.
        """

    @abstractmethod
    def run(self, image: str, timeout: float,
            cancel_event: Optional[threading.Event] = None) -> ImageStats:
        """
        Invokes the tool against an image and parses its output.

        :param image: Image reference.
        :param timeout: Budget in seconds for the subprocess.
        :param cancel_event: Shared cancellation signal.
        :return: The partial result this tool contributes.
        :raises ToolExecutionError: On non-zero exit, timeout, cancellation or bad output.
        """

    def _require_binary(self) -> str:
        if not self.binary and not self.is_available():
            raise ToolNotFoundError(f"{self.name} not found")
        return self.binary

    def __repr__(self) -> str:
        return f"{type(self).__name__}(binary={self.binary!r})"


class InstalledToolAdapter(ToolAdapter):
    """
    Adapter for a standalone scanner found on PATH or in the install dir.
    """
    tool: str = ""

    @property
    def name(self) -> str:
        return self.tool

    def is_available(self) -> bool:
        try:
            self.binary, _ = lookup_tool(self.tool)
        except ToolNotFoundError:
            return False
        return True


class RuntimeToolAdapter(ToolAdapter):
    """
    Adapter driven through the container runtime, docker or podman.
    """
    def is_available(self) -> bool:
        self.binary = detect_runtime()
        return self.binary is not None

    def _require_binary(self) -> str:
        if not self.binary and not self.is_available():
            raise ToolNotFoundError("no container runtime found (docker or podman)")
        return self.binary


def load_json(tool: str, output: bytes) -> Any:
    """
    Decodes tool output, reporting failures as ``OutputParseError``.
    """
    try:
        return json.loads(output)
    except (ValueError, UnicodeDecodeError) as e:
        raise OutputParseError(tool, str(e), e) from e


def validate_output(tool: str, model: Any, data: Any) -> Any:
    """
    Validates decoded tool output against a pydantic model or type.
    """
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        raise OutputParseError(tool, str(e), e) from e
