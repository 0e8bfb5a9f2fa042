import pytest

from case_activity_service.tests.fakes import Clock, build_world


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def world(clock):
    return build_world(clock)
