"""Test fixtures and configuration."""

import pytest
import structlog
from fakes import FakeTransport

from topic_dedupe import DedupeRegistry


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def registry(transport: FakeTransport) -> DedupeRegistry:
    return DedupeRegistry(transport.open, transport.close)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """setup_logging() reconfigures structlog globally; undo it after each test."""
    yield
    structlog.reset_defaults()
