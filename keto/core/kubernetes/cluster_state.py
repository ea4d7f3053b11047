from dataclasses import dataclass, field

from pydantic import BaseModel, Field, computed_field

from keto.core.exceptions import KetoError
from keto.core.kubernetes.configuration import PoolRole


class NodeState(BaseModel):
    name: str
    address: str | None = None
    healthy: bool = False


class ObservedPoolState(BaseModel):
    name: str
    role: PoolRole
    desired_size: int
    nodes: list[NodeState] = Field(default_factory=list)
    machine_type: str | None = None
    disk_size_gb: int | None = None
    os_version: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    taints: dict[str, tuple[str, str]] = Field(default_factory=dict)
    # PoolSpec extra args field -> value, empty ones omitted
    extra_args: dict[str, str] = Field(default_factory=dict)

    @computed_field
    @property
    def size(self) -> int:
        return len(self.nodes)

    @computed_field
    @property
    def healthy_nodes(self) -> int:
        return sum(1 for x in self.nodes if x.healthy)


class ObservedClusterState(BaseModel):
    """Point-in-time snapshot of a cluster as reported by the provider. Never cached."""

    name: str
    cloud_provider_name: str
    internal: bool
    kube_version: str
    networks: list[str] = Field(default_factory=list)
    dns_zone: str | None = None
    endpoint: str | None = None
    master_pool: ObservedPoolState
    compute_pools: dict[str, ObservedPoolState] = Field(default_factory=dict)

    def get_pool(self, pool_name: str) -> ObservedPoolState | None:
        if pool_name == self.master_pool.name:
            return self.master_pool

        return self.compute_pools.get(pool_name)


class ClusterSummary(BaseModel):
    name: str
    cloud_provider_name: str
    internal: bool
    kube_version: str
    master_pool_size: int
    compute_pools: list[str] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: ObservedClusterState) -> 'ClusterSummary':
        return cls(
            name=state.name,
            cloud_provider_name=state.cloud_provider_name,
            internal=state.internal,
            kube_version=state.kube_version,
            master_pool_size=state.master_pool.size,
            compute_pools=sorted(state.compute_pools),
        )


@dataclass(frozen=True)
class PoolResult:
    pool_name: str
    error: KetoError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CreateClusterResult:
    state: ObservedClusterState
    pool_results: list[PoolResult] = field(default_factory=list)

    @property
    def failed_pools(self) -> list[PoolResult]:
        return [x for x in self.pool_results if not x.succeeded]

    @property
    def succeeded(self) -> bool:
        return not self.failed_pools
