import pytest

from api import create_app
from models import storage
from tests.helpers import FakeClock


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def flow(app):
    return app.extensions["auth_flow"]


@pytest.fixture
def clock():
    return FakeClock()
