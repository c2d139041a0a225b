"""
Dactyl Testing - in-process client and ASGI factories for tests.
"""

from .client import TestClient, TestResponse
from .utils import make_test_receive, make_test_request, make_test_scope

__all__ = [
    "TestClient",
    "TestResponse",
    "make_test_receive",
    "make_test_request",
    "make_test_scope",
]
