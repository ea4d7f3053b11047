from fastapi import Depends

from keto.core.exceptions import InvalidSpecError
from keto.core.kubernetes import AssetBundle
from keto.core.kubernetes.cluster_controller import ClusterController
from keto.core.providers.provider_factory import ProviderRegistry, build_provider_registry

provider_registry = build_provider_registry()

# one controller per provider so provider sessions outlive a single request
_controllers: dict[str, ClusterController] = {}


def get_provider_registry() -> ProviderRegistry:
    return provider_registry


def get_cluster_controller(
    cloud: str, registry: ProviderRegistry = Depends(get_provider_registry)
) -> ClusterController:
    key = cloud.lower()

    if key not in _controllers:
        _controllers[key] = ClusterController(registry.get_provider(key))

    return _controllers[key]


def load_assets(assets_dir: str) -> AssetBundle:
    try:
        return AssetBundle.from_directory(assets_dir)
    except FileNotFoundError as e:
        raise InvalidSpecError(str(e)) from e
