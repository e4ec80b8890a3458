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
The standard set of tool adapters.
"""
from typing import List, Optional

from ..MODELS.docs_config import TimeoutConfig
from ..RUNNERS.process_runner import detect_runtime, lookup_tool
from ..errors import ToolNotFoundError
from .base import ToolAdapter
from .dive import DiveAdapter
from .grype import GrypeAdapter
from .manifest import ManifestAdapter
from .runtime import RuntimeAdapter
from .syft import SyftAdapter


def default_adapters(timeouts: Optional[TimeoutConfig] = None) -> List[ToolAdapter]:
    """
    Builds a fresh list of the five adapters. Instances keep the binary they
    resolved, so each analysis gets its own list.

    :param timeouts: Overrides for the inspect and scan budgets.
    """
    adapters: List[ToolAdapter] = [
        RuntimeAdapter(),
        ManifestAdapter(),
        SyftAdapter(),
        GrypeAdapter(),
        DiveAdapter(),
    ]
    if timeouts:
        for adapter in adapters:
            scan_class = isinstance(adapter, (SyftAdapter, GrypeAdapter, DiveAdapter))
            adapter.timeout = timeouts.scan if scan_class else timeouts.inspect
    return adapters


def tool_status() -> List[dict]:
    """
    Reports which tools are installed, without running any of them.

    :return: One entry per tool with ``name``, ``available``, ``path`` and ``source``.
    """
    status = []
    runtime = detect_runtime()
    status.append({
        "name": runtime or "docker or podman",
        "available": runtime is not None,
        "path": runtime or "",
        "source": "PATH" if runtime else "",
    })
    for adapter in (SyftAdapter, GrypeAdapter, DiveAdapter):
        try:
            path, source = lookup_tool(adapter.tool)
            status.append({"name": adapter.tool, "available": True, "path": path, "source": source})
        except ToolNotFoundError:
            status.append({"name": adapter.tool, "available": False, "path": "", "source": ""})
    return status
