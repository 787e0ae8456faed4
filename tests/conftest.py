"""
Shared fixtures for HTTP output tests.

Requests never leave the process: each client's session.request is
replaced with a Mock returning canned responses.
"""
from typing import Optional
from unittest.mock import Mock

import pytest

from http_output.transmission.circuit_breaker import reset_circuit_breakers
from http_output.transmission.client import Client
from http_output.transmission.observer import CountingObserver
from http_output.transmission.settings import ConnectionSettings, RoutingSettings

TEST_URL = "http://collector.example:8080/ingest"


def make_response(status: int = 200, content: bytes = b"{}", reason: Optional[str] = None) -> Mock:
    response = Mock()
    response.status_code = status
    response.content = content
    response.reason = reason if reason is not None else ("OK" if status < 300 else "Error")
    return response


@pytest.fixture(autouse=True)
def _reset_breakers():
    yield
    reset_circuit_breakers()


@pytest.fixture
def settings() -> ConnectionSettings:
    return ConnectionSettings(url=TEST_URL, timeout=5.0)


@pytest.fixture
def observer() -> CountingObserver:
    return CountingObserver()


@pytest.fixture
def session_request() -> Mock:
    return Mock(return_value=make_response(200))


@pytest.fixture
def client(settings, observer, session_request) -> Client:
    """Connected client whose session returns 200 unless told otherwise."""
    c = Client(settings, RoutingSettings(params={"pipeline": "events"}), observer)
    c.connection.session.request = session_request
    c.connect()
    return c
