"""Shared pytest fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers that setup_logging attached during a test."""
    yield
    logger = logging.getLogger("jobrunner")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
