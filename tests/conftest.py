import pytest

from tests.platform_helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
