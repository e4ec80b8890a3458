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
Makes sure an image is present locally before it is analyzed.
"""
import logging
from typing import Optional

from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import CommandFailedError, CommandTimeoutError, ImagePullError, ToolExecutionError
from .process_runner import detect_runtime, run_command

logger = logging.getLogger(__name__)

PULL_ATTEMPTS = 3


class ImagePuller:
    """
    Inspects an image with the local container runtime and pulls it when absent.
    """
    def __init__(self, runtime: Optional[str] = None, timeout: float = 300.0):
        """
        :param runtime: Runtime binary; detected (docker, then podman) when None.
        :param timeout: Budget in seconds for each inspect or pull attempt.
        """
        self.runtime = runtime
        self.timeout = timeout

    def ensure(self, image: str) -> None:
        """
        Checks whether the image exists locally and pulls it if not.

        :param image: Image reference.
        :raises ImagePullError: If no runtime is installed or every pull attempt fails.
        """
        runtime = self.runtime or detect_runtime()
        if not runtime:
            raise ImagePullError("no container runtime found (docker or podman)")

        try:
            run_command([runtime, "inspect", "--type=image", image], timeout=self.timeout)
            logger.debug("Image %s found locally", image)
            return
        except ToolExecutionError as e:
            logger.debug("Image %s not found locally: %s", image, e)

        logger.info("Pulling image: %s ...", image)
        try:
            self._pull(runtime, image)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise ImagePullError(f"failed to pull image {image}: {cause}") from cause

    @retry(
        stop=stop_after_attempt(PULL_ATTEMPTS),
        wait=wait_exponential(multiplier=1, max=10),
        retry=retry_if_exception_type((CommandFailedError, CommandTimeoutError)),
    )
    def _pull(self, runtime: str, image: str) -> None:
        run_command([runtime, "pull", image], timeout=self.timeout)
