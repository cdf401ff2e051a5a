"""Shared pytest fixtures for the ShopEase tests."""

import logging
from collections.abc import Generator

import pytest


@pytest.fixture(autouse=True)
def reset_shopease_logger() -> Generator[None, None, None]:
    """Drop handlers added by setup_logging so each test starts clean."""
    yield
    root_logger = logging.getLogger("shopease")
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
