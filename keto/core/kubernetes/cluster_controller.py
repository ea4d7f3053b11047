import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from keto.core.config import PROVIDER_CALL_TIMEOUT
from keto.core.exceptions import (
    InvalidSpecError,
    KetoError,
    NotFoundError,
    OperationTimeoutError,
    ProviderError,
)
from keto.core.kubernetes.assets import AssetBundle
from keto.core.kubernetes.cluster_state import (
    ClusterSummary,
    CreateClusterResult,
    ObservedClusterState,
    ObservedPoolState,
    PoolResult,
)
from keto.core.kubernetes.configuration import (
    EXTRA_ARGS_FIELDS,
    MASTER_POOL_NAME,
    ClusterSpec,
    PoolRole,
    PoolSpec,
    apply_defaults,
    apply_pool_defaults,
    validate_cluster_spec,
    validate_pool_spec,
)
from keto.core.providers.base_provider import BaseProvider
from keto.core.retry import NO_RETRY, RetryPolicy
from keto.core.userdata import UserDataGenerator
from keto.core.utils import setup_logger

T = TypeVar('T')


class ClusterController:
    """Runs the create, update, delete, describe and get workflows against one provider.

    Every operation is single-shot: it runs to completion in the caller's task
    and keeps no state between calls. The cloud account, queried through the
    provider, is the only record of what exists.
    """

    def __init__(
        self,
        provider: BaseProvider,
        user_data: UserDataGenerator | None = None,
        timeout: float | None = PROVIDER_CALL_TIMEOUT,
        retry_policy: RetryPolicy = NO_RETRY,
    ) -> None:
        self._logger = setup_logger('ClusterController')

        self._provider = provider
        self._user_data = user_data or UserDataGenerator()
        self._timeout = timeout
        self._retry_policy = retry_policy

    @property
    def provider(self) -> BaseProvider:
        return self._provider

    async def _bounded(self, resource: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            async with asyncio.timeout(self._timeout):
                return await call()
        except TimeoutError as e:
            self._logger.error(f'Provider call for {resource} timed out after {self._timeout}s')
            raise OperationTimeoutError(resource, self._timeout) from e
        except KetoError:
            raise
        except Exception as e:
            raise ProviderError(f'Provider {self._provider.name} failed on {resource}: {e}', cause=e) from e

    async def _call(self, resource: str, func: Callable[..., Awaitable[T]], *args) -> T:
        async for attempt in self._retry_policy.retrying():
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    self._logger.warning(f'Retrying provider call for {resource}, attempt {attempt_number}')
                return await self._bounded(resource, lambda: func(*args))

    def _check_provider_name(self, cloud_provider_name: str | None) -> list[str]:
        if cloud_provider_name is not None and cloud_provider_name.lower() != self._provider.name:
            return [
                f"Cloud provider '{cloud_provider_name}' does not match the selected provider '{self._provider.name}'"
            ]
        return []

    @staticmethod
    def _spec_from_state(state: ObservedClusterState) -> ClusterSpec:
        return ClusterSpec(
            name=state.name,
            cloud_provider_name=state.cloud_provider_name,
            internal=state.internal,
            networks=state.networks,
            dns_zone=state.dns_zone,
            kube_version=state.kube_version,
            master_pool=PoolSpec.master(size=state.master_pool.desired_size),
        )

    @staticmethod
    def _merge_pool_update(pool_spec: PoolSpec, current: ObservedPoolState) -> PoolSpec:
        """Fill the fields an update leaves unset from the pool's observed state.

        Size, machine type, disk size and OS version are unset when None. Labels,
        taints and extra args are unset only when not passed at all, so passing an
        empty value clears them.
        """
        observed = {
            'size': current.desired_size,
            'machine_type': current.machine_type,
            'disk_size_gb': current.disk_size_gb,
            'os_version': current.os_version,
        }
        update = {k: v for k, v in observed.items() if getattr(pool_spec, k) is None}

        carried = {
            'labels': current.labels,
            'taints': current.taints,
            **{x: current.extra_args.get(x, '') for x in EXTRA_ARGS_FIELDS},
        }
        update |= {k: v for k, v in carried.items() if k not in pool_spec.model_fields_set}

        return pool_spec.model_copy(update=update)

    async def _create_compute_pool(
        self, cluster_spec: ClusterSpec, pool_spec: PoolSpec, assets: AssetBundle, master_endpoint: str
    ) -> ObservedClusterState:
        user_data = self._user_data.generate(
            PoolRole.COMPUTE, cluster_spec, pool_spec, assets, master_endpoint=master_endpoint
        )

        return await self._call(
            f'pool {pool_spec.name} of cluster {cluster_spec.name}',
            self._provider.create_compute_pool,
            cluster_spec.name,
            pool_spec,
            user_data,
        )

    async def create_cluster(self, cluster_spec: ClusterSpec, assets: AssetBundle) -> CreateClusterResult:
        """Provision the master pool, then every compute pool concurrently.

        A compute pool failure is recorded in the result and leaves the master
        pool and the other compute pools in place. Any failure before or during
        master pool creation is raised and no compute pool is attempted.
        """
        all_pools = [x.name for x in cluster_spec.pools()]
        self._logger.info(f'Will create cluster {cluster_spec.name} with pools {all_pools}')

        validate_cluster_spec(cluster_spec)

        problems = self._check_provider_name(cluster_spec.cloud_provider_name)
        if problems:
            raise InvalidSpecError(problems)

        self._user_data.check_assets(PoolRole.MASTER, assets)
        if cluster_spec.compute_pools:
            self._user_data.check_assets(PoolRole.COMPUTE, assets)

        defaults = await self._call(f'defaults of provider {self._provider.name}', self._provider.resolve_defaults)
        cluster_spec = apply_defaults(cluster_spec, defaults)

        master_user_data = self._user_data.generate(PoolRole.MASTER, cluster_spec, cluster_spec.master_pool, assets)

        state = await self._call(
            f'cluster {cluster_spec.name}', self._provider.create_master_pool, cluster_spec, master_user_data
        )
        self._logger.info(f'Master pool of cluster {cluster_spec.name} created, endpoint {state.endpoint}')

        if not cluster_spec.compute_pools:
            return CreateClusterResult(state=state)

        if not state.endpoint:
            raise ProviderError(
                f'Provider {self._provider.name} reported no endpoint for cluster {cluster_spec.name}', retryable=False
            )

        pool_names = list(cluster_spec.compute_pools)
        outcomes = await asyncio.gather(
            *(
                self._create_compute_pool(cluster_spec, cluster_spec.compute_pools[x], assets, state.endpoint)
                for x in pool_names
            ),
            return_exceptions=True,
        )

        pool_results = []
        compute_pools: dict[str, ObservedPoolState] = {}

        for pool_name, outcome in zip(pool_names, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome

                error = outcome if isinstance(outcome, KetoError) else ProviderError(str(outcome), cause=outcome)
                self._logger.error(f'Failed to create pool {pool_name} of cluster {cluster_spec.name}: {error}')
                pool_results.append(PoolResult(pool_name=pool_name, error=error))
                continue

            pool_results.append(PoolResult(pool_name=pool_name))
            if pool_name in outcome.compute_pools:
                compute_pools[pool_name] = outcome.compute_pools[pool_name]

        failed = [x.pool_name for x in pool_results if not x.succeeded]
        if failed:
            self._logger.warning(f'Cluster {cluster_spec.name} created with failed pools {failed}')
        else:
            self._logger.info(f'Cluster {cluster_spec.name} created')

        return CreateClusterResult(
            state=state.model_copy(update={'compute_pools': {**state.compute_pools, **compute_pools}}),
            pool_results=pool_results,
        )

    async def create_compute_pool(
        self, cluster_name: str, pool_spec: PoolSpec, assets: AssetBundle
    ) -> ObservedClusterState:
        """Add one compute pool to an existing cluster, or retry one that failed during create."""
        self._logger.info(f'Will create pool {pool_spec.name} in cluster {cluster_name}')

        if pool_spec.role != PoolRole.COMPUTE:
            raise InvalidSpecError(f"Pool '{pool_spec.name}' must have the compute role")

        validate_pool_spec(pool_spec)
        self._user_data.check_assets(PoolRole.COMPUTE, assets)

        state = await self.describe_cluster(cluster_name)

        if not state.endpoint:
            raise ProviderError(
                f'Provider {self._provider.name} reported no endpoint for cluster {cluster_name}', retryable=False
            )

        defaults = await self._call(f'defaults of provider {self._provider.name}', self._provider.resolve_defaults)

        return await self._create_compute_pool(
            self._spec_from_state(state), apply_pool_defaults(pool_spec, defaults), assets, state.endpoint
        )

    async def update_pool(
        self,
        cluster_name: str,
        pool_spec: PoolSpec,
        cloud_provider_name: str | None = None,
        internal: bool | None = None,
    ) -> ObservedClusterState:
        """Change the size or node parameters of an existing pool.

        Provider and internal are fixed when the cluster is created, so an update
        carrying either (other than the selected provider) is rejected before any
        provider call, as is a change of a pool's role or the master pool's name.
        Fields the update leaves unset keep their observed values.
        """
        self._logger.info(f'Will update pool {pool_spec.name} of cluster {cluster_name}')

        problems = self._check_provider_name(cloud_provider_name)

        if internal is not None:
            problems.append('Cluster internal flag is fixed at creation and cannot be part of an update')

        if problems:
            raise InvalidSpecError(problems)

        validate_pool_spec(pool_spec)

        state = await self.describe_cluster(cluster_name)
        current = state.get_pool(pool_spec.name)

        if current is None:
            raise NotFoundError(f"Pool '{pool_spec.name}' not found in cluster '{cluster_name}'")

        if current.role != pool_spec.role:
            raise InvalidSpecError(
                f"Pool '{pool_spec.name}' role cannot be changed from {current.role} to {pool_spec.role}"
            )

        pool_spec = self._merge_pool_update(pool_spec, current)

        return await self._call(
            f'pool {pool_spec.name} of cluster {cluster_name}', self._provider.update_pool, cluster_name, pool_spec
        )

    async def delete_cluster(self, cluster_name: str, pool_name: str | None = None) -> None:
        """Delete a compute pool, or the whole cluster when no pool is named.

        The master pool only goes away together with its cluster.
        """
        if pool_name == MASTER_POOL_NAME:
            raise InvalidSpecError(
                f"Master pool of cluster '{cluster_name}' cannot be deleted on its own, delete the cluster instead"
            )

        state = await self.describe_cluster(cluster_name)

        if pool_name is None:
            self._logger.info(f'Will delete cluster {cluster_name}')
            await self._call(f'cluster {cluster_name}', self._provider.delete_cluster, cluster_name)
            self._logger.info(f'Cluster {cluster_name} deleted')
            return

        if pool_name not in state.compute_pools:
            raise NotFoundError(f"Compute pool '{pool_name}' not found in cluster '{cluster_name}'")

        self._logger.info(f'Will delete pool {pool_name} of cluster {cluster_name}')
        await self._call(
            f'pool {pool_name} of cluster {cluster_name}', self._provider.delete_compute_pool, cluster_name, pool_name
        )
        self._logger.info(f'Pool {pool_name} of cluster {cluster_name} deleted')

    async def describe_cluster(self, cluster_name: str) -> ObservedClusterState:
        return await self._call(f'cluster {cluster_name}', self._provider.describe_cluster, cluster_name)

    async def describe_pool(self, cluster_name: str, pool_name: str) -> ObservedPoolState:
        state = await self.describe_cluster(cluster_name)
        pool = state.get_pool(pool_name)

        if pool is None:
            raise NotFoundError(f"Pool '{pool_name}' not found in cluster '{cluster_name}'")

        return pool

    async def get_clusters(self, cluster_name: str | None = None) -> list[ClusterSummary]:
        if cluster_name is not None:
            return [ClusterSummary.from_state(await self.describe_cluster(cluster_name))]

        return await self._call(f'clusters of provider {self._provider.name}', self._provider.list_clusters)
