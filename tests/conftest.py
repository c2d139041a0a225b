"""
Shared test fixtures for the Dactyl test suite.
"""

import pytest

from dactyl.di import Container, RequestScope
from dactyl.response import Response


@pytest.fixture
def container():
    return Container()


@pytest.fixture
def request_scope():
    return RequestScope()


@pytest.fixture
def response():
    return Response()
