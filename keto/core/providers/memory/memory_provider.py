import asyncio
from dataclasses import dataclass, field

from keto.core.config import (
    DEFAULT_COMPUTE_POOL_SIZE,
    DEFAULT_COREOS_VERSION,
    DEFAULT_DISK_SIZE_GB,
    DEFAULT_KUBE_VERSION,
)
from keto.core.exceptions import AlreadyExistsError, NotFoundError
from keto.core.kubernetes import (
    MASTER_POOL_NAME,
    ClusterSpec,
    ClusterSummary,
    NodeState,
    ObservedClusterState,
    ObservedPoolState,
    PoolRole,
    PoolSpec,
)
from keto.core.kubernetes.configuration import EXTRA_ARGS_FIELDS
from keto.core.providers.base_provider import BaseProvider, ProviderDefaults, resource_name


@dataclass
class InMemoryConfig:
    domain: str = 'keto.local'
    os_version: str = DEFAULT_COREOS_VERSION
    disk_size_gb: int = DEFAULT_DISK_SIZE_GB
    kube_version: str = DEFAULT_KUBE_VERSION
    compute_pool_size: int = DEFAULT_COMPUTE_POOL_SIZE
    # simulated API latency in seconds
    latency: float = 0.0

    def to_dict(self) -> dict:
        return {
            'domain': self.domain,
            'os_version': self.os_version,
            'disk_size_gb': self.disk_size_gb,
            'kube_version': self.kube_version,
            'compute_pool_size': self.compute_pool_size,
            'latency': self.latency,
        }


@dataclass
class _PoolRecord:
    spec: PoolSpec
    user_data: bytes


@dataclass
class _ClusterRecord:
    spec: ClusterSpec
    pools: dict[str, _PoolRecord] = field(default_factory=dict)


class InMemoryProvider(BaseProvider):
    """Provider keeping cluster resources in process memory.

    Resources are named with resource_name(), so creating a cluster or pool
    that already exists returns the existing resources.
    """

    name = 'memory'

    def __init__(self, config: InMemoryConfig | None = None) -> None:
        self._config = config or InMemoryConfig()
        self._clusters: dict[str, _ClusterRecord] = {}
        self._lock = asyncio.Lock()

        super().__init__()

    async def _simulate_latency(self) -> None:
        if self._config.latency:
            await asyncio.sleep(self._config.latency)

    def _get_record(self, cluster_name: str) -> _ClusterRecord:
        record = self._clusters.get(cluster_name)

        if record is None:
            raise NotFoundError(f"Cluster '{cluster_name}' not found")

        return record

    def _endpoint(self, spec: ClusterSpec) -> str:
        if spec.dns_zone:
            return f'https://kube.{spec.name}.{spec.dns_zone}:6443'

        return f'https://{resource_name(spec.name, PoolRole.MASTER)}.{self._config.domain}:6443'

    def _pool_state(self, cluster_name: str, record: _PoolRecord) -> ObservedPoolState:
        spec = record.spec
        prefix = resource_name(cluster_name, spec.role, spec.name)

        return ObservedPoolState(
            name=spec.name,
            role=spec.role,
            desired_size=spec.size or 0,
            nodes=[
                NodeState(name=f'{prefix}-{i}', address=f'{prefix}-{i}.{self._config.domain}', healthy=True)
                for i in range(spec.size or 0)
            ],
            machine_type=spec.machine_type,
            disk_size_gb=spec.disk_size_gb,
            os_version=spec.os_version,
            labels=dict(spec.labels),
            taints=dict(spec.taints),
            extra_args={x: getattr(spec, x) for x in EXTRA_ARGS_FIELDS if getattr(spec, x)},
        )

    def _cluster_state(self, record: _ClusterRecord) -> ObservedClusterState:
        spec = record.spec
        pools = {name: self._pool_state(spec.name, x) for name, x in record.pools.items()}

        return ObservedClusterState(
            name=spec.name,
            cloud_provider_name=self.name,
            internal=spec.internal,
            kube_version=spec.kube_version or self._config.kube_version,
            networks=list(spec.networks) or [resource_name(spec.name, 'network')],
            dns_zone=spec.dns_zone,
            endpoint=self._endpoint(spec),
            master_pool=pools.pop(MASTER_POOL_NAME),
            compute_pools=dict(sorted(pools.items())),
        )

    def get_user_data(self, cluster_name: str, pool_name: str) -> bytes:
        """Return the bootstrap payload the pool's instances were launched with."""
        record = self._get_record(cluster_name)

        if pool_name not in record.pools:
            raise NotFoundError(f"Pool '{pool_name}' not found in cluster '{cluster_name}'")

        return record.pools[pool_name].user_data

    async def resolve_defaults(self) -> ProviderDefaults:
        return ProviderDefaults(
            os_version=self._config.os_version,
            disk_size_gb=self._config.disk_size_gb,
            kube_version=self._config.kube_version,
            compute_pool_size=self._config.compute_pool_size,
        )

    async def create_master_pool(self, cluster_spec: ClusterSpec, user_data: bytes) -> ObservedClusterState:
        await self._simulate_latency()

        async with self._lock:
            existing = self._clusters.get(cluster_spec.name)

            if existing is not None:
                immutable = ('internal', 'networks', 'dns_zone')
                if any(getattr(existing.spec, x) != getattr(cluster_spec, x) for x in immutable):
                    raise AlreadyExistsError(f"A different cluster named '{cluster_spec.name}' already exists")

                self._logger.info(f'Master pool of cluster {cluster_spec.name} already exists, reusing it')
                return self._cluster_state(existing)

            record = _ClusterRecord(spec=cluster_spec.model_copy(update={'compute_pools': {}}))
            record.pools[MASTER_POOL_NAME] = _PoolRecord(spec=cluster_spec.master_pool, user_data=user_data)
            self._clusters[cluster_spec.name] = record

            self._logger.info(f'Created master pool of cluster {cluster_spec.name}')

            return self._cluster_state(record)

    async def create_compute_pool(
        self, cluster_name: str, pool_spec: PoolSpec, user_data: bytes
    ) -> ObservedClusterState:
        await self._simulate_latency()

        async with self._lock:
            record = self._get_record(cluster_name)

            if pool_spec.name in record.pools:
                self._logger.info(f'Pool {pool_spec.name} of cluster {cluster_name} already exists, reusing it')
                return self._cluster_state(record)

            record.pools[pool_spec.name] = _PoolRecord(spec=pool_spec, user_data=user_data)
            self._logger.info(f'Created compute pool {pool_spec.name} of cluster {cluster_name}')

            return self._cluster_state(record)

    async def update_pool(self, cluster_name: str, pool_spec: PoolSpec) -> ObservedClusterState:
        await self._simulate_latency()

        async with self._lock:
            record = self._get_record(cluster_name)
            pool = record.pools.get(pool_spec.name)

            if pool is None:
                raise NotFoundError(f"Pool '{pool_spec.name}' not found in cluster '{cluster_name}'")

            pool.spec = pool_spec
            self._logger.info(f'Updated pool {pool_spec.name} of cluster {cluster_name}, size={pool_spec.size}')

            return self._cluster_state(record)

    async def delete_compute_pool(self, cluster_name: str, pool_name: str) -> None:
        await self._simulate_latency()

        async with self._lock:
            record = self._get_record(cluster_name)

            if pool_name == MASTER_POOL_NAME or pool_name not in record.pools:
                raise NotFoundError(f"Compute pool '{pool_name}' not found in cluster '{cluster_name}'")

            del record.pools[pool_name]
            self._logger.info(f'Removed compute pool {pool_name} of cluster {cluster_name}')

    async def delete_cluster(self, cluster_name: str) -> None:
        await self._simulate_latency()

        async with self._lock:
            if self._clusters.pop(cluster_name, None) is None:
                self._logger.warning(f'Cluster {cluster_name} already removed')
                return

            self._logger.info(f'Removed cluster {cluster_name}')

    async def describe_cluster(self, cluster_name: str) -> ObservedClusterState:
        await self._simulate_latency()

        async with self._lock:
            return self._cluster_state(self._get_record(cluster_name))

    async def list_clusters(self) -> list[ClusterSummary]:
        await self._simulate_latency()

        async with self._lock:
            return [ClusterSummary.from_state(self._cluster_state(x)) for _, x in sorted(self._clusters.items())]
