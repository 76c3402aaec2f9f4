import pytest

from .helpers import FakeClock, SpyProvider


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> SpyProvider:
    return SpyProvider()
