"""Pytest fixtures: an auth gateway wired to in-memory collaborators."""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from fakes import FakeIdentityGateway, InMemoryProfileStore, RecordingNotifier
from gateway import AuthGateway
from main import create_app
from tokens import TokenService

SECRET = "test-secret-key-with-enough-length-for-hs256"


@pytest.fixture
def settings():
    return Settings(
        jwt_secret=SECRET,
        frontend_url="https://app.realtime.test",
        firebase_project_id="realtime-test",
        firebase_service_account_key='{"type": "service_account"}',
        brevo_api_key="brevo-key",
        environment="test",
        port=8000,
    )


@pytest.fixture
def tokens():
    return TokenService(SECRET)


@pytest.fixture
def identity():
    return FakeIdentityGateway()


@pytest.fixture
def profiles():
    return InMemoryProfileStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway(identity, profiles, notifier, tokens):
    return AuthGateway(identity, profiles, notifier, tokens)


@pytest.fixture
def client(settings, gateway):
    app = create_app(settings, gateway)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def registration():
    return {
        "name": "Ana",
        "lastname": "Lopez",
        "email": "ANA@X.com",
        "password": "secret1",
        "confirmPassword": "secret1",
        "age": 20,
    }
