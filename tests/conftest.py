import pytest

from fakes import FakeAdminClient


@pytest.fixture
def fake_client():
    return FakeAdminClient()
