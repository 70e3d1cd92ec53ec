from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import Any

import pytest
import structlog
from hypothesis import HealthCheck, settings

from aip_reviewer.observability.logging import configure_logging
from tests import documents

# The autouse logging fixture is function scoped; it holds no per-example state.
settings.register_profile(
    "aip-reviewer",
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
settings.load_profile("aip-reviewer")


@pytest.fixture(autouse=True)
def _quiet_structlog() -> Iterator[None]:
    # Route library logging into a throwaway stream.
    configure_logging("DEBUG", stream=io.StringIO())
    yield
    structlog.reset_defaults()
    logger = logging.getLogger("aip_reviewer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(logging.NullHandler())
    logger.propagate = True


@pytest.fixture
def compliant_document() -> dict[str, Any]:
    return documents.compliant_document()


@pytest.fixture
def singular_document() -> dict[str, Any]:
    return documents.singular_collection_document()


@pytest.fixture
def unpaginated_document() -> dict[str, Any]:
    return documents.unpaginated_list_document()


@pytest.fixture
def problem_document() -> dict[str, Any]:
    return documents.problem_document()
