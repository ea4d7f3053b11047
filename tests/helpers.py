
from keto.core.kubernetes import AssetBundle, ClusterSpec, PoolSpec
from keto.core.kubernetes.assets import KNOWN_ASSETS
from keto.core.providers.memory.memory_provider import InMemoryConfig, InMemoryProvider


def make_pem(name: str) -> bytes:
    return f'-----BEGIN CERTIFICATE-----\n{name.upper()}+/=\n-----END CERTIFICATE-----\n'.encode()


def make_assets(*exclude: str) -> AssetBundle:
    return AssetBundle({name: make_pem(name) for name in KNOWN_ASSETS if name not in exclude})


class RecordingProvider(InMemoryProvider):
    """In-memory provider that records every call and can fail chosen operations."""

    def __init__(self, config: InMemoryConfig | None = None) -> None:
        super().__init__(config)
        self.calls: list[tuple] = []
        # pool name -> exception raised by create_compute_pool
        self.failing_pools: dict[str, Exception] = {}
        self.master_error: Exception | None = None

    async def resolve_defaults(self):
        self.calls.append(('resolve_defaults',))
        return await super().resolve_defaults()

    async def create_master_pool(self, cluster_spec, user_data):
        self.calls.append(('create_master_pool', cluster_spec.name))
        if self.master_error is not None:
            raise self.master_error
        return await super().create_master_pool(cluster_spec, user_data)

    async def create_compute_pool(self, cluster_name, pool_spec, user_data):
        self.calls.append(('create_compute_pool', cluster_name, pool_spec.name))
        if pool_spec.name in self.failing_pools:
            raise self.failing_pools[pool_spec.name]
        return await super().create_compute_pool(cluster_name, pool_spec, user_data)

    async def update_pool(self, cluster_name, pool_spec):
        self.calls.append(('update_pool', cluster_name, pool_spec.name))
        return await super().update_pool(cluster_name, pool_spec)

    async def delete_compute_pool(self, cluster_name, pool_name):
        self.calls.append(('delete_compute_pool', cluster_name, pool_name))
        return await super().delete_compute_pool(cluster_name, pool_name)

    async def delete_cluster(self, cluster_name):
        self.calls.append(('delete_cluster', cluster_name))
        return await super().delete_cluster(cluster_name)

    async def describe_cluster(self, cluster_name):
        self.calls.append(('describe_cluster', cluster_name))
        return await super().describe_cluster(cluster_name)

    async def list_clusters(self):
        self.calls.append(('list_clusters',))
        return await super().list_clusters()

    def call_names(self) -> list[str]:
        return [x[0] for x in self.calls]


def make_cluster_spec(name: str = 'demo', master_size: int = 3, **compute_sizes: int) -> ClusterSpec:
    return ClusterSpec(
        name=name,
        cloud_provider_name='memory',
        networks=['net-a'],
        dns_zone='example.com',
        master_pool=PoolSpec.master(size=master_size),
        compute_pools={pool: PoolSpec.compute(pool, size=size) for pool, size in compute_sizes.items()},
    )
