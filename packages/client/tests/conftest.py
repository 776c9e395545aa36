"""
Shared fixtures for the client tests.
"""

import pytest
from fastapi.testclient import TestClient

from mock_backend import create_pandoro_app
from pandoro_client.requester import PandoroRequester

HOST = "http://testserver"
PASSWORD = "pandoro-password"


@pytest.fixture
def backend():
    return create_pandoro_app()


@pytest.fixture
def http_client(backend):
    with TestClient(backend, base_url=HOST) as client:
        yield client


@pytest.fixture
def make_requester(http_client):
    """Build requesters sharing the same backend, one per simulated user."""

    def factory() -> PandoroRequester:
        return PandoroRequester(HOST, client=http_client)

    return factory


@pytest.fixture
def signed_up(make_requester):
    """Sign up a fresh user and return its requester."""

    def factory(name: str = "Ada", surname: str = "Lovelace", email: str = "ada@pandoro.dev") -> PandoroRequester:
        requester = make_requester()
        result = requester.sign_up(name, surname, email, PASSWORD)
        assert result.success, result.error
        return requester

    return factory


@pytest.fixture
def requester(signed_up):
    return signed_up()
