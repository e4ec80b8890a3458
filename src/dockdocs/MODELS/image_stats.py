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
Models for the results of dynamic image analysis.

Every field of ``ImageStats`` is optional: each tool adapter fills in the
part it knows about and the analyzer merges the partial results.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from pydantic import BaseModel

SEVERITY_RANK: Dict[str, int] = {
    "Critical": 4,
    "High": 3,
    "Medium": 2,
    "Low": 1,
    "Unknown": 0,
}

SEVERITY_ORDER: List[str] = ["Critical", "High", "Medium", "Low", "Negligible", "Unknown"]


class PackageSummary(BaseModel):
    """
    A package found in the image's software bill of materials.
    """
    name: str
    version: str = ""


class Vulnerability(BaseModel):
    """
    A vulnerability matched against one installed package.
    """
    id: str
    severity: str = "Unknown"
    package: str = ""
    version: str = ""


class ImageStats(BaseModel):
    """
    Consolidated analysis of one image tag.
    """
    image_tag: str = ""
    architecture: str = ""
    os: str = ""
    os_distro: str = ""
    size_bytes: int = 0
    total_layers: int = 0
    supported_architectures: List[str] = []

    # from dive, 0-100
    efficiency_score: float = 0.0
    wasted_bytes: int = 0

    total_packages: int = 0
    packages: List[PackageSummary] = []
    vulnerabilities: List[Vulnerability] = []
    vuln_summary: Dict[str, int] = {}
    scan_timestamp: Optional[datetime] = None

    warnings: List[str] = []

    @property
    def size_mb(self) -> str:
        return format_megabytes(self.size_bytes)

    @property
    def wasted_mb(self) -> str:
        return format_megabytes(self.wasted_bytes)

    @property
    def total_vulnerabilities(self) -> int:
        return len(self.vulnerabilities)

    def vuln_count(self, severity: str) -> int:
        """Number of vulnerabilities reported with the given severity token."""
        return self.vuln_summary.get(severity, 0)


def format_megabytes(size: int) -> str:
    """
    Formats a byte count the way the reports display sizes.

    >>> format_megabytes(1048576)
    '1.00 MB'
    """
    return f"{size / 1024 / 1024:.2f} MB"


def severity_rank(severity: str) -> int:
    """
    Rank of a severity token; anything unrecognized ranks as Unknown.
    """
    return SEVERITY_RANK.get(severity, 0)


def sort_vulnerabilities(vulnerabilities: Iterable[Vulnerability]) -> List[Vulnerability]:
    """
    Orders vulnerabilities by severity rank (highest first), then by id.
    """
    return sorted(vulnerabilities, key=lambda v: (-severity_rank(v.severity), v.id))


def dedupe_packages(packages: Iterable[PackageSummary]) -> List[PackageSummary]:
    """
    Drops repeated (name, version) pairs and sorts by name, then version.
    """
    seen = set()
    unique = []
    for pkg in packages:
        key = (pkg.name, pkg.version)
        if key in seen:
            continue
        seen.add(key)
        unique.append(pkg)
    return sorted(unique, key=lambda p: (p.name, p.version))
