import pytest

from fakes import FakeToolHost


@pytest.fixture
def add_host() -> FakeToolHost:
    return FakeToolHost({"add": lambda args: args["a"] + args["b"]})
