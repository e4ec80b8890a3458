import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """The CLI binds a handler to the stderr of each invocation; drop it afterwards."""
    yield
    package_logger = logging.getLogger("dockdocs")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
