import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_mediasync_logger():
    yield
    logger = logging.getLogger("mediasync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
