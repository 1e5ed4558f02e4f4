"""
Trellis Testing - in-process ASGI test client and scope helpers.
"""

from .client import TestClient, TestResponse
from .utils import make_test_receive, make_test_scope

__all__ = [
    "TestClient",
    "TestResponse",
    "make_test_scope",
    "make_test_receive",
]
