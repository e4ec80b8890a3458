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
Supported platforms from ``docker manifest inspect``.
"""
import os
import threading
from typing import List, Optional

from pydantic import BaseModel, Field

from ..MODELS.image_stats import ImageStats
from ..RUNNERS.process_runner import run_command
from ..errors import OutputParseError
from .base import TIMEOUT_INSPECT, RuntimeToolAdapter, load_json, validate_output


class _Platform(BaseModel):
    os: str = ""
    architecture: str = ""


class _ManifestEntry(BaseModel):
    platform: _Platform = Field(default_factory=_Platform)


class _ManifestIndex(BaseModel):
    manifests: Optional[List[_ManifestEntry]] = None


class ManifestAdapter(RuntimeToolAdapter):
    """
    Runs ``<runtime> manifest inspect <image>`` to list multi-arch platforms.
    """
    timeout = TIMEOUT_INSPECT

    @property
    def name(self) -> str:
        return "manifest"

    def run(self, image: str, timeout: float,
            cancel_event: Optional[threading.Event] = None) -> ImageStats:
        binary = self._require_binary()
        # Older docker releases gate manifest commands behind the experimental flag
        env = dict(os.environ, DOCKER_CLI_EXPERIMENTAL="enabled")
        output = run_command([binary, "manifest", "inspect", image], timeout, cancel_event, env=env)
        return parse_manifest_inspect(output, image)


def parse_manifest_inspect(output: bytes, image: str) -> ImageStats:
    """
    Extracts ``os/arch`` pairs from a manifest list.

    A single-image manifest carries no platform list; that yields an empty
    result rather than an error.
    """
    data = load_json("manifest inspect", output)
    if not isinstance(data, dict):
        raise OutputParseError("manifest inspect", "expected a JSON object")

    index = validate_output("manifest inspect", _ManifestIndex, data)
    platforms = set()
    for entry in index.manifests or []:
        if not entry.platform.os and not entry.platform.architecture:
            continue
        # attestation manifests report unknown/unknown
        if entry.platform.os == "unknown":
            continue
        platforms.add(f"{entry.platform.os}/{entry.platform.architecture}")

    return ImageStats(image_tag=image, supported_architectures=sorted(platforms))
