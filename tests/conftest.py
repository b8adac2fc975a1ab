import pytest

from taqlp.parameter import ParameterGraph
from taqlp.system import Network
from taqlp.testing import make_timestepper, storage_model, two_node_model
from taqlp.time import Timestepper


@pytest.fixture
def two_node() -> tuple[Network, ParameterGraph]:
    return two_node_model()


@pytest.fixture
def storage_chain() -> tuple[Network, ParameterGraph]:
    return storage_model()


@pytest.fixture
def three_steps() -> Timestepper:
    return make_timestepper(3)


@pytest.fixture
def five_steps() -> Timestepper:
    return make_timestepper(5)
