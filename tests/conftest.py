import pytest

from keto.core.kubernetes import AssetBundle, ClusterSpec
from keto.core.kubernetes.cluster_controller import ClusterController
from tests.helpers import RecordingProvider, make_assets, make_cluster_spec


@pytest.fixture
def assets() -> AssetBundle:
    return make_assets()


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def controller(provider) -> ClusterController:
    return ClusterController(provider, timeout=None)


@pytest.fixture
def demo_spec() -> ClusterSpec:
    return make_cluster_spec('demo', master_size=3, default=2)
