import pytest

from cloudprnt_broker.app import create_app
from cloudprnt_broker.protocol import ProtocolHandler
from cloudprnt_broker.store import JobStore


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def handler(store):
    return ProtocolHandler(store, media_types=['text/plain'], poll_interval=5,
                           success_status='0', strict_ack=False)


@pytest.fixture
def app(handler):
    app = create_app(handler=handler)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def http(app):
    return app.test_client()
