" generic fixtures "
import logging
from io import BytesIO

import pytest
from pytest_asyncio import fixture

from statusrelay.config import Configuration, GeneratorConfig
from statusrelay.sink import OutputSink


def pytest_configure():
    "Runs once before all"
    from statusrelay.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def test_logger():
    "A logger for objects requiring one"
    return logging.getLogger("statusrelay.tests")


@pytest.fixture
def output():
    "The consumer side stream"
    return BytesIO()


@pytest.fixture
def sink(output):
    "A sink writing to `output`"
    return OutputSink(output)


@pytest.fixture
def generator_config():
    "Default launch settings"
    return GeneratorConfig()


@fixture
async def empty_config(test_logger):
    "An empty relay configuration section"
    yield Configuration(logger=test_logger)
