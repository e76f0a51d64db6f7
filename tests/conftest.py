"""
Shared pytest fixtures for deltasync tests.
"""

import logging
from pathlib import Path

import pytest

from deltasync import MapState, SyncClient, SyncServer


@pytest.fixture(scope="session")
def test_output_root() -> Path:
    """
    Returns the root test_output directory. Created once per test session.
    Files here persist after tests complete for easy access.
    """
    output_dir = Path(__file__).parent.parent / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


@pytest.fixture
def test_output_dir(request, test_output_root) -> Path:
    """
    Returns a directory for the current test to write output files.
    Directory structure: test_output/<module_name>/<test_name>/
    """
    module_name = request.module.__name__.split(".")[-1]
    test_name = request.node.name

    test_dir = test_output_root / module_name / test_name
    test_dir.mkdir(parents=True, exist_ok=True)
    return test_dir


@pytest.fixture
def server() -> SyncServer:
    """Server holding ``{1: "A", 2: "B"}``."""
    return SyncServer(MapState({1: "A", 2: "B"}))


@pytest.fixture
def client() -> SyncClient:
    """Fresh client with id 7."""
    return SyncClient.with_id(7)


@pytest.fixture(autouse=True)
def reset_deltasync_logging():
    """Reset logging state before and after each test.

    Leaves the deltasync logger with only a NullHandler and level NOTSET so
    one test's logging configuration cannot leak into another.
    """
    logger = logging.getLogger("deltasync")

    def reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    reset()
    yield
    reset()
