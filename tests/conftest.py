# tests/conftest.py

import os

import pytest
from fakes.fake_transport import FakeOneShotTransport, FakePersistentTransport
from helpers import CapturingBus, ManualScheduler


@pytest.fixture
def bus():
    return CapturingBus()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def transport():
    return FakePersistentTransport()


@pytest.fixture
def http():
    return FakeOneShotTransport()


# ============== Pytest Configuration ==============

def pytest_addoption(parser):
    parser.addoption("--robot-host", action="store", default=os.getenv("ROBOT_HOST", "192.168.4.1"))
    parser.addoption("--robot-port", action="store", type=int, default=int(os.getenv("ROBOT_PORT", "80")))
    parser.addoption("--run-hil", action="store_true", default=False, help="Run HIL tests")


def pytest_configure(config):
    config.addinivalue_line("markers", "hil: hardware-in-the-loop tests (requires a robot on the network)")
    config.addinivalue_line("markers", "motion: tests that cause physical motion")


def pytest_collection_modifyitems(config, items):
    """Skip HIL tests unless --run-hil is specified."""
    if not config.getoption("--run-hil"):
        skip_hil = pytest.mark.skip(reason="Need --run-hil option to run HIL tests")
        for item in items:
            if "hil" in item.keywords:
                item.add_marker(skip_hil)


# ============== HIL Fixtures ==============

@pytest.fixture(scope="session")
def robot_host(request) -> str:
    return request.config.getoption("--robot-host")


@pytest.fixture(scope="session")
def robot_port(request) -> int:
    return request.config.getoption("--robot-port")
