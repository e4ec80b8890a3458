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
Vulnerability matches from ``grype <image> -o json``.
"""
import logging
import re
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from ..MODELS.image_stats import ImageStats, Vulnerability, sort_vulnerabilities
from ..RUNNERS.process_runner import run_command
from ..errors import OutputParseError
from .base import TIMEOUT_SCAN, InstalledToolAdapter, load_json, validate_output

logger = logging.getLogger(__name__)

# datetime only accepts up to microsecond precision
FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


class _Descriptor(BaseModel):
    timestamp: str = ""


class _MatchVulnerability(BaseModel):
    id: str
    severity: str = "Unknown"


class _MatchArtifact(BaseModel):
    name: str = ""
    version: str = ""


class _Match(BaseModel):
    vulnerability: _MatchVulnerability
    artifact: _MatchArtifact = Field(default_factory=_MatchArtifact)


class _GrypeDocument(BaseModel):
    descriptor: Optional[_Descriptor] = Field(default_factory=_Descriptor)
    matches: Optional[List[_Match]] = None


class GrypeAdapter(InstalledToolAdapter):
    """
    Scans an image for known vulnerabilities.
    """
    tool = "grype"
    timeout = TIMEOUT_SCAN

    def run(self, image: str, timeout: float,
            cancel_event: Optional[threading.Event] = None) -> ImageStats:
        binary = self._require_binary()
        output = run_command([binary, image, "-o", "json"], timeout, cancel_event)
        return parse_grype_output(output)


def parse_grype_output(output: bytes) -> ImageStats:
    """
    Parses grype's JSON report into sorted vulnerabilities, a per-severity
    summary and the scan time.
    """
    data = load_json("grype", output)
    if not isinstance(data, dict):
        raise OutputParseError("grype", "expected a JSON object")
    document = validate_output("grype", _GrypeDocument, data)

    vulnerabilities = [
        Vulnerability(
            id=match.vulnerability.id,
            severity=match.vulnerability.severity,
            package=match.artifact.name,
            version=match.artifact.version,
        )
        for match in document.matches or []
    ]
    # Summary keys keep the severity token exactly as grype reported it
    summary = Counter(v.severity for v in vulnerabilities)

    return ImageStats(
        vulnerabilities=sort_vulnerabilities(vulnerabilities),
        vuln_summary=dict(summary),
        scan_timestamp=parse_timestamp((document.descriptor or _Descriptor()).timestamp),
    )


def parse_timestamp(value: str) -> datetime:
    """
    Parses an RFC 3339 timestamp, falling back to the current time.
    """
    if value:
        try:
            return datetime.fromisoformat(FRACTION_PATTERN.sub(r"\1", value.replace("Z", "+00:00")))
        except ValueError as e:
            logger.debug("Failed to parse grype timestamp %r: %s", value, e)
    return datetime.now(timezone.utc)
