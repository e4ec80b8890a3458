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
Exception hierarchy shared by the parser, the analysis pipeline and the CLI.
"""
from typing import List, Optional


class DockDocsError(Exception):
    """Base class for every error raised by dock-docs."""


class DockerfileNotFoundError(DockDocsError):
    """The Dockerfile to document could not be read."""


class ConfigError(DockDocsError):
    """The YAML configuration file is missing or invalid."""


class TemplateError(DockDocsError):
    """A template could not be found, parsed or rendered."""


class MarkerNotFoundError(DockDocsError):
    """The injection markers are absent from the output file."""

    def __init__(self, marker: str):
        super().__init__(f"markers for '{marker}' not found in output file")
        self.marker = marker


class InvalidImageError(DockDocsError):
    """The image reference handed to the analyzer is empty or malformed."""


class AnalysisCancelledError(DockDocsError):
    """Analysis was requested after the cancellation signal had fired."""


class StrictAnalysisError(DockDocsError):
    """Raised in strict mode when any tool adapter reported a failure."""

    def __init__(self, image: str, warnings: List[str]):
        joined = "; ".join(warnings)
        super().__init__(f"analysis of {image} reported failures: {joined}")
        self.image = image
        self.warnings = warnings


class ToolNotFoundError(DockDocsError):
    """An external tool binary is neither on PATH nor in the install dir."""


class ToolExecutionError(DockDocsError):
    """An external tool ran but did not produce a usable result."""


class CommandFailedError(ToolExecutionError):
    """The command exited with a non-zero status."""

    def __init__(self, command: List[str], returncode: int, stderr: str = ""):
        message = f"command failed: {' '.join(command)} (exit {returncode})"
        if stderr:
            message += f"\nStderr: {stderr.strip()}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class CommandTimeoutError(ToolExecutionError):
    """The command did not finish within its timeout budget."""

    def __init__(self, command: List[str], timeout: float):
        super().__init__(f"command timed out after {timeout:g}s: {' '.join(command)}")
        self.command = command
        self.timeout = timeout


class CommandCancelledError(ToolExecutionError):
    """The command was aborted because the cancellation signal fired."""


class OutputParseError(ToolExecutionError):
    """The tool produced output that does not match its expected JSON schema."""

    def __init__(self, tool: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(f"failed to parse {tool} output: {reason}")
        self.tool = tool
        self.__cause__ = cause


class ImagePullError(DockDocsError):
    """The image is not available locally and could not be pulled."""
