from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keto.core.utils import setup_logger

if TYPE_CHECKING:
    from keto.core.kubernetes import ClusterSpec, ClusterSummary, ObservedClusterState, PoolRole, PoolSpec


@dataclass(frozen=True)
class ProviderDefaults:
    os_version: str
    disk_size_gb: int
    kube_version: str
    compute_pool_size: int


def resource_name(cluster_name: str, role: PoolRole | str, pool_name: str | None = None) -> str:
    """Deterministic cloud resource name for a cluster-, role- or pool-scoped resource.

    Providers name and tag everything they create with this so that a retried
    create finds the resources of the previous attempt instead of duplicating them.
    """
    parts = [cluster_name, str(role)]

    if pool_name and pool_name != str(role):
        parts.append(pool_name)

    return '-'.join(parts)


class BaseProvider(ABC):
    """Contract every cloud backend implements.

    Implementations must be safe for concurrent use from several tasks of one
    controller operation. Semantic failures are reported with the exceptions
    from keto.core.exceptions; anything else is treated as a transient
    provider failure by the controller.
    """

    name: str

    def __init__(self) -> None:
        self._logger = setup_logger(self.name.capitalize())

    @abstractmethod
    async def resolve_defaults(self) -> ProviderDefaults:
        pass

    @abstractmethod
    async def create_master_pool(self, cluster_spec: ClusterSpec, user_data: bytes) -> ObservedClusterState:
        pass

    @abstractmethod
    async def create_compute_pool(
        self, cluster_name: str, pool_spec: PoolSpec, user_data: bytes
    ) -> ObservedClusterState:
        pass

    @abstractmethod
    async def update_pool(self, cluster_name: str, pool_spec: PoolSpec) -> ObservedClusterState:
        pass

    @abstractmethod
    async def delete_compute_pool(self, cluster_name: str, pool_name: str) -> None:
        pass

    @abstractmethod
    async def delete_cluster(self, cluster_name: str) -> None:
        pass

    @abstractmethod
    async def describe_cluster(self, cluster_name: str) -> ObservedClusterState:
        pass

    @abstractmethod
    async def list_clusters(self) -> list[ClusterSummary]:
        pass
