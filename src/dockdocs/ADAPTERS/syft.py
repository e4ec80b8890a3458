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
Software bill of materials from ``syft <image> -o json``.
"""
import threading
from typing import List, Optional

from pydantic import BaseModel, Field

from ..MODELS.image_stats import ImageStats, PackageSummary, dedupe_packages
from ..RUNNERS.process_runner import run_command
from ..errors import OutputParseError
from .base import TIMEOUT_SCAN, InstalledToolAdapter, load_json, validate_output


class _Distro(BaseModel):
    name: str = ""
    version: str = ""


class _Artifact(BaseModel):
    name: str
    version: str = ""
    type: str = ""


class _SyftDocument(BaseModel):
    distro: Optional[_Distro] = Field(default_factory=_Distro)
    artifacts: Optional[List[_Artifact]] = None


class SyftAdapter(InstalledToolAdapter):
    """
    Lists the packages installed in an image.
    """
    tool = "syft"
    timeout = TIMEOUT_SCAN

    def run(self, image: str, timeout: float,
            cancel_event: Optional[threading.Event] = None) -> ImageStats:
        binary = self._require_binary()
        output = run_command([binary, image, "-o", "json"], timeout, cancel_event)
        return parse_syft_output(output)


def parse_syft_output(output: bytes) -> ImageStats:
    """
    Parses syft's JSON document into the distro name and a deduplicated package list.
    """
    data = load_json("syft", output)
    if not isinstance(data, dict):
        raise OutputParseError("syft", "expected a JSON object")
    document = validate_output("syft", _SyftDocument, data)

    distro = document.distro or _Distro()
    os_distro = f"{distro.name} {distro.version}".strip() if distro.name else ""

    packages = dedupe_packages(
        PackageSummary(name=a.name, version=a.version) for a in document.artifacts or []
    )
    return ImageStats(
        os_distro=os_distro,
        packages=packages,
        total_packages=len(packages),
    )
