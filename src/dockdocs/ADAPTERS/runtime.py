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
Image metadata from ``docker inspect`` or ``podman inspect``.
"""
import threading
from typing import List, Optional

from pydantic import BaseModel, Field

from ..MODELS.image_stats import ImageStats
from ..RUNNERS.process_runner import run_command
from ..errors import OutputParseError
from .base import TIMEOUT_INSPECT, RuntimeToolAdapter, load_json, validate_output


class _RootFS(BaseModel):
    Layers: List[str] = []


class _InspectEntry(BaseModel):
    Architecture: str = ""
    Os: str = ""
    Size: int = 0
    RootFS: _RootFS = Field(default_factory=_RootFS)


class RuntimeAdapter(RuntimeToolAdapter):
    """
    Runs ``<runtime> inspect <image>`` for architecture, OS, size and layer count.
    """
    timeout = TIMEOUT_INSPECT

    @property
    def name(self) -> str:
        return self.binary or "runtime"

    def run(self, image: str, timeout: float,
            cancel_event: Optional[threading.Event] = None) -> ImageStats:
        binary = self._require_binary()
        output = run_command([binary, "inspect", image], timeout, cancel_event)
        return parse_runtime_inspect(output, image, binary)


def parse_runtime_inspect(output: bytes, image: str, binary: str = "docker") -> ImageStats:
    """
    Parses the JSON array printed by ``inspect``; only the first entry is used.
    """
    tool = f"{binary} inspect"
    entries = validate_output(tool, List[_InspectEntry], load_json(tool, output))
    if not entries:
        raise OutputParseError(tool, f"no inspect data returned for image {image}")

    data = entries[0]
    return ImageStats(
        image_tag=image,
        architecture=data.Architecture,
        os=data.Os,
        size_bytes=data.Size,
        total_layers=len(data.RootFS.Layers),
    )
