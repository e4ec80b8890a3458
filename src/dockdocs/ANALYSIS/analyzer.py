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
Concurrent image analysis across several inspection tools.

Every available adapter runs in its own worker thread with its own timeout.
Results are merged on the calling thread as the workers finish, so the
destination ``ImageStats`` only ever has one writer. A failing tool becomes
a warning on the result; it never aborts its siblings or the analysis.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence

from ..ADAPTERS.base import ToolAdapter
from ..ADAPTERS.defaults import default_adapters
from ..MODELS.image_stats import ImageStats, dedupe_packages, sort_vulnerabilities
from ..REGISTRY.image_reference import ImageReference
from ..errors import AnalysisCancelledError, DockDocsError, InvalidImageError

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[], List[ToolAdapter]]

SCALAR_FIELDS = (
    "architecture",
    "os",
    "os_distro",
    "size_bytes",
    "total_layers",
    "efficiency_score",
    "wasted_bytes",
    "total_packages",
    "scan_timestamp",
)


def validate_image(image: str) -> ImageReference:
    """
    Checks an image reference before any tool is launched.

    :raises InvalidImageError: If the reference is empty or malformed.
    """
    if not image or not image.strip():
        raise InvalidImageError("image tag is required")
    try:
        return ImageReference.parse(image)
    except ValueError as e:
        raise InvalidImageError(f"invalid image reference {image!r}: {e}") from e


def analyze_image(image: str,
                  adapters: Sequence[ToolAdapter],
                  cancel_event: Optional[threading.Event] = None) -> ImageStats:
    """
    Runs every available adapter against one image and merges the results.

    Args:
        image: Image reference to analyze.
        adapters: Adapter instances to use; unavailable ones are skipped.
        cancel_event: Shared cancellation signal for the subprocesses.

    Returns:
        ImageStats: The merged result. Adapter failures are listed in
        ``warnings`` and the remaining fields are still valid.

    Raises:
        InvalidImageError: If the image reference is empty or malformed.
        AnalysisCancelledError: If ``cancel_event`` was already set.
    """
    validate_image(image)
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError(f"analysis of {image} cancelled before start")

    stats = ImageStats(image_tag=image)

    available = []
    for adapter in adapters:
        if adapter.is_available():
            available.append(adapter)
        else:
            logger.info("%s is not installed or not in PATH. Skipping.", adapter.name)

    if not available:
        logger.warning("No analysis tools available for %s", image)
        return finalize_stats(stats)

    with ThreadPoolExecutor(max_workers=len(available),
                            thread_name_prefix="dock-docs-tool") as executor:
        futures = {
            executor.submit(adapter.run, image, adapter.timeout, cancel_event): adapter
            for adapter in available
        }
        for future in as_completed(futures):
            adapter = futures[future]
            try:
                partial = future.result()
            except Exception as e:
                warning = f"{adapter.name} failed: {e}"
                stats.warnings.append(warning)
                logger.warning("Analysis warning for %s: %s", image, warning)
                continue
            logger.debug("%s finished for %s", adapter.name, image)
            merge_stats(stats, partial)

    return finalize_stats(stats)


def merge_stats(dest: ImageStats, src: Optional[ImageStats]) -> ImageStats:
    """
    Folds a partial result into the destination.

    Scalars are overwritten by any non-empty value, lists are appended,
    supported platforms are unioned and summary counts are added per key.
    """
    if src is None:
        return dest

    for field in SCALAR_FIELDS:
        value = getattr(src, field)
        if value:
            setattr(dest, field, value)

    if src.supported_architectures:
        dest.supported_architectures = sorted(
            set(dest.supported_architectures) | set(src.supported_architectures)
        )
    dest.packages.extend(src.packages)
    dest.vulnerabilities.extend(src.vulnerabilities)
    for severity, count in src.vuln_summary.items():
        dest.vuln_summary[severity] = dest.vuln_summary.get(severity, 0) + count
    dest.warnings.extend(src.warnings)
    return dest


def finalize_stats(stats: ImageStats) -> ImageStats:
    """
    Puts the merged collections in their deterministic order.
    """
    stats.packages = dedupe_packages(stats.packages)
    stats.vulnerabilities = sort_vulnerabilities(stats.vulnerabilities)
    return stats


def analyze_comparison(images: Sequence[str],
                       adapter_factory: AdapterFactory = default_adapters,
                       cancel_event: Optional[threading.Event] = None) -> List[ImageStats]:
    """
    Analyzes several images concurrently, each independently of the others.

    Args:
        images: Image references, in display order.
        adapter_factory: Builds a fresh adapter list for each image.
        cancel_event: Shared cancellation signal.

    Returns:
        List[ImageStats]: One result per image, in input order. An image whose
        analysis could not start carries the reason in ``warnings``.
    """
    if not images:
        return []

    def analyze_one(image: str) -> ImageStats:
        try:
            return analyze_image(image, adapter_factory(), cancel_event)
        except DockDocsError as e:
            logger.warning("Analysis of %s failed: %s", image, e)
            return ImageStats(image_tag=image, warnings=[str(e)])

    with ThreadPoolExecutor(max_workers=len(images),
                            thread_name_prefix="dock-docs-image") as executor:
        return list(executor.map(analyze_one, images))
