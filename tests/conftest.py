import logging

import pytest

from signalpost.core.runtime import install_default_center


@pytest.fixture(autouse=True)
def fresh_runtime():
    """Each test gets its own default center and an untouched signalpost logger."""
    logger = logging.getLogger("signalpost")
    saved = (list(logger.handlers), logger.propagate, logger.level)
    install_default_center(None)
    yield
    install_default_center(None)
    logger.handlers[:] = saved[0]
    logger.propagate = saved[1]
    logger.setLevel(saved[2])
