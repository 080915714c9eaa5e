import pytest

from gateway_harness.client import ApiClient
from gateway_harness.config import HarnessConfig
from stubs import FakeBackend, StubTransport


class FakeSleep:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def config():
    return HarnessConfig()


@pytest.fixture
def sleep():
    return FakeSleep()


@pytest.fixture
def stub():
    return StubTransport()


@pytest.fixture
def stub_client(config, stub, sleep):
    return ApiClient(config, stub, sleep=sleep)


@pytest.fixture
def backend(config):
    return FakeBackend(config)


@pytest.fixture
def backend_client(config, backend, sleep):
    return ApiClient(config, backend, sleep=sleep)
