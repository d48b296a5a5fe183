import pytest

from signaling import MessageRouter
from tests.helpers import FakeConnection


@pytest.fixture
def router():
    return MessageRouter()


@pytest.fixture
def connect(router):
    def _connect(connection=None):
        connection = connection or FakeConnection()
        return router.connect(connection), connection
    return _connect
