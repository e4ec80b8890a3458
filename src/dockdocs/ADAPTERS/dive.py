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
Layer efficiency from ``dive <image> --json <file>``.
"""
import json
import logging
import os
import shutil
import tempfile
import threading
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ..MODELS.image_stats import ImageStats
from ..RUNNERS.process_runner import run_command
from ..errors import OutputParseError, ToolExecutionError
from .base import TIMEOUT_SCAN, InstalledToolAdapter, load_json, validate_output

logger = logging.getLogger(__name__)


class _DiveImage(BaseModel):
    inefficientBytes: int = 0
    efficiencyScore: float = Field(default=0.0, ge=0.0, le=1.0)


class _DiveDocument(BaseModel):
    image: _DiveImage


class DiveAdapter(InstalledToolAdapter):
    """
    Measures wasted space across image layers. dive writes its report to a
    file rather than stdout; each run uses its own temporary file.
    """
    tool = "dive"
    timeout = TIMEOUT_SCAN

    def run(self, image: str, timeout: float,
            cancel_event: Optional[threading.Event] = None) -> ImageStats:
        binary = self._require_binary()

        fd, report_path = tempfile.mkstemp(prefix="dive-output-", suffix=".json")
        os.close(fd)
        try:
            # dive logs progress to stdout even in --json mode
            run_command([binary, image, "--json", report_path], timeout, cancel_event,
                        env=dive_environment(), combine_output=True)
            with open(report_path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise ToolExecutionError(f"failed to read dive output: {e}") from e
        finally:
            try:
                os.remove(report_path)
            except OSError:
                logger.debug("Could not remove %s", report_path)

        return parse_dive_output(content)


def dive_environment() -> Optional[Dict[str, str]]:
    """
    Points dive at the podman machine socket when docker is missing, podman
    is present and DOCKER_HOST is not already set.
    """
    if shutil.which("docker") or not shutil.which("podman") or os.environ.get("DOCKER_HOST"):
        return None

    socket_path = detect_podman_socket()
    if not socket_path:
        return None
    return dict(os.environ, DOCKER_HOST=socket_path)


def detect_podman_socket() -> str:
    """
    Reads the socket of the first podman machine; empty when none is found.
    """
    try:
        output = run_command(["podman", "machine", "inspect"], timeout=10)
        machines = json.loads(output)
    except (ToolExecutionError, ValueError):
        return ""

    if not isinstance(machines, list) or not machines or not isinstance(machines[0], dict):
        return ""
    socket = (machines[0].get("ConnectionInfo") or {}).get("PodmanSocket") or {}
    path = socket.get("Path", "") if isinstance(socket, dict) else ""
    if not path:
        return ""
    if not path.startswith("unix://"):
        path = "unix://" + path
    return path


def parse_dive_output(content: bytes) -> ImageStats:
    """
    Parses dive's report; the 0-1 efficiency score is scaled to 0-100.
    """
    data = load_json("dive", content)
    if not isinstance(data, dict):
        raise OutputParseError("dive", "expected a JSON object")
    document = validate_output("dive", _DiveDocument, data)
    return ImageStats(
        efficiency_score=document.image.efficiencyScore * 100,
        wasted_bytes=document.image.inefficientBytes,
    )
