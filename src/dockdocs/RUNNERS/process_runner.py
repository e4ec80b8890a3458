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
Execution of external tools with timeouts, cancellation and output capture.
"""
import logging
import os
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..errors import (
    CommandCancelledError,
    CommandFailedError,
    CommandTimeoutError,
    ToolNotFoundError,
)

logger = logging.getLogger(__name__)

INSTALL_DIR_ENV = "DOCK_DOCS_INSTALL_DIR"
CONTAINER_RUNTIMES = ("docker", "podman")

# Granularity at which a running command notices cancellation
POLL_INTERVAL = 0.1


def install_dir() -> Path:
    """
    Directory where dock-docs looks for tools outside of PATH.
    Defaults to ~/.dock-docs/bin.
    """
    override = os.environ.get(INSTALL_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".dock-docs" / "bin"


def lookup_tool(name: str, search_dir: Optional[Path] = None) -> Tuple[str, str]:
    """
    Resolves the path of an external tool.

    Args:
        name: Binary name, e.g. ``syft``.
        search_dir: Fallback directory; defaults to ``install_dir()``.

    Returns:
        Tuple of (path, source) where source is ``"PATH"`` or ``"install dir"``.

    Raises:
        ToolNotFoundError: If the tool is in neither location.
    """
    path = shutil.which(name)
    if path:
        return path, "PATH"

    directory = search_dir or install_dir()
    candidate = directory / (name + ".exe" if os.name == "nt" else name)
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate), "install dir"

    raise ToolNotFoundError(f"{name} not found in PATH or {directory}")


def detect_runtime() -> Optional[str]:
    """
    Returns the first container runtime found on PATH, preferring docker.
    """
    for binary in CONTAINER_RUNTIMES:
        if shutil.which(binary):
            return binary
    return None


def run_command(command: List[str],
                timeout: float,
                cancel_event: Optional[threading.Event] = None,
                env: Optional[Dict[str, str]] = None,
                combine_output: bool = False) -> bytes:
    """
    Runs a command to completion and returns its standard output.

    The command is terminated, then killed, once ``timeout`` seconds have
    passed or ``cancel_event`` is set. Only this one process is affected.

    Args:
        command: Command and arguments to execute.
        timeout: Budget in seconds.
        cancel_event: Optional shared cancellation signal.
        env: Full environment for the process; inherits ours when None.
        combine_output: Merge stderr into the returned output.

    Returns:
        bytes: Captured standard output.

    Raises:
        CommandTimeoutError, CommandCancelledError, CommandFailedError
    """
    logger.debug("Running: %s", " ".join(command))

    try:
        process = subprocess.Popen(
            command,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combine_output else subprocess.PIPE,
            # Avoid shell=True for security reasons (CWE-78)
            shell=False,
        )
    except OSError as e:
        raise CommandFailedError(command, -1, str(e)) from e

    deadline = time.monotonic() + timeout
    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                _stop(process)
                raise CommandCancelledError(f"command cancelled: {' '.join(command)}")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                _stop(process)
                raise CommandTimeoutError(command, timeout)

            wait = remaining if cancel_event is None else min(POLL_INTERVAL, remaining)
            try:
                stdout, stderr = process.communicate(timeout=wait)
                break
            except subprocess.TimeoutExpired:
                continue
    finally:
        if process.poll() is None:
            _stop(process)

    if process.returncode != 0:
        output = stdout if combine_output else stderr
        raise CommandFailedError(command, process.returncode,
                                 (output or b"").decode("utf-8", errors="replace"))

    logger.debug("Output (%d bytes) from %s", len(stdout or b""), command[0])
    return stdout or b""


def _stop(process: subprocess.Popen, grace: float = 5.0) -> None:
    """
    Sends SIGTERM, followed by SIGKILL if the process does not stop.
    """
    process.terminate()
    try:
        process.communicate(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.debug("Process %d did not terminate, killing...", process.pid)
        process.kill()
        process.communicate()
