"""
Shared test fixtures and helpers for the Trellis test suite.
"""

import pytest

from trellis.config import Config
from trellis.controller.metadata import MetadataStore
from trellis.di import Container
from trellis.request import Request
from trellis.testing import make_test_receive, make_test_scope


# ============================================================================
# Request Helpers
# ============================================================================


def make_request(
    method: str = "GET",
    path: str = "/",
    *,
    body: bytes = b"",
    headers=None,
    query_string: str = "",
) -> Request:
    """Build a Request over an in-memory ASGI scope."""
    scope = make_test_scope(method=method, path=path, headers=headers, query_string=query_string)
    return Request(scope, make_test_receive(body))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store() -> MetadataStore:
    """Isolated metadata store, so test controllers never leak into each other."""
    return MetadataStore()


@pytest.fixture
def container() -> Container:
    return Container(name="test")


@pytest.fixture
def test_config() -> Config:
    return Config(environment="test")
