from pydantic import BaseModel, Field, field_validator

from keto.core.kubernetes import (
    MASTER_POOL_NAME,
    ClusterSpec,
    CreateClusterResult,
    ObservedClusterState,
    PoolResult,
    PoolRole,
    PoolSpec,
)
from keto.core.utils import parse_labels, parse_taints


class NodePoolParametersSchema(BaseModel):
    machine_type: str | None = None
    disk_size: int | None = Field(default=None, gt=0)
    coreos_version: str | None = None
    ssh_key: str | None = None
    labels: list[str] = Field(default_factory=list, description='key=value')
    taints: list[str] = Field(default_factory=list, description='key=value[:effect]')
    kubelet_extra_args: str = ''

    @field_validator('labels')
    @classmethod
    def check_labels(cls, value: list[str] | None) -> list[str] | None:
        parse_labels(value or [])
        return value

    @field_validator('taints')
    @classmethod
    def check_taints(cls, value: list[str] | None) -> list[str] | None:
        parse_taints(value or [])
        return value

    def _pool_fields(self) -> dict:
        return {
            'machine_type': self.machine_type,
            'disk_size_gb': self.disk_size,
            'os_version': self.coreos_version,
            'ssh_key': self.ssh_key,
            'labels': parse_labels(self.labels),
            'taints': parse_taints(self.taints),
            'kubelet_extra_args': self.kubelet_extra_args,
        }


class ClusterCreateSchema(NodePoolParametersSchema):
    name: str
    internal: bool = False
    networks: list[str] = Field(default_factory=list)
    dns_zone: str | None = None
    kube_version: str | None = None
    master_pool_size: int | None = Field(default=None, ge=0)
    pool_size: int | None = Field(default=None, ge=0)
    compute_pools: int = Field(default=1, ge=0, description='Number of compute pools to create')
    api_server_extra_args: str = ''
    controller_manager_extra_args: str = ''
    scheduler_extra_args: str = ''
    assets_dir: str

    def to_cluster_spec(self, cloud: str) -> ClusterSpec:
        master_pool = PoolSpec.master(
            size=self.master_pool_size,
            machine_type=self.machine_type,
            disk_size_gb=self.disk_size,
            os_version=self.coreos_version,
            ssh_key=self.ssh_key,
            kubelet_extra_args=self.kubelet_extra_args,
            api_server_extra_args=self.api_server_extra_args,
            controller_manager_extra_args=self.controller_manager_extra_args,
            scheduler_extra_args=self.scheduler_extra_args,
        )

        compute_pools = {
            f'compute-{i}': PoolSpec.compute(f'compute-{i}', size=self.pool_size, **self._pool_fields())
            for i in range(self.compute_pools)
        }

        return ClusterSpec(
            name=self.name,
            cloud_provider_name=cloud,
            internal=self.internal,
            networks=self.networks,
            dns_zone=self.dns_zone,
            kube_version=self.kube_version,
            master_pool=master_pool,
            compute_pools=compute_pools,
        )


class PoolCreateSchema(NodePoolParametersSchema):
    name: str
    pool_size: int | None = Field(default=None, ge=0)
    assets_dir: str

    def to_pool_spec(self) -> PoolSpec:
        return PoolSpec.compute(self.name, size=self.pool_size, **self._pool_fields())


class PoolUpdateSchema(NodePoolParametersSchema):
    """Partial update of a pool.

    Fields left out or null keep their current value. An empty list or string
    clears labels, taints or extra args.
    """

    pool_size: int | None = Field(default=None, ge=0)
    role: PoolRole | None = None
    cloud: str | None = Field(default=None, description='Fixed at creation, only the selected provider is accepted')
    internal: bool | None = Field(default=None, description='Fixed at creation, any value is rejected')
    labels: list[str] | None = Field(default=None, description='key=value')
    taints: list[str] | None = Field(default=None, description='key=value[:effect]')
    kubelet_extra_args: str | None = None
    api_server_extra_args: str | None = None
    controller_manager_extra_args: str | None = None
    scheduler_extra_args: str | None = None

    def to_pool_spec(self, pool_name: str) -> PoolSpec:
        role = self.role or (PoolRole.MASTER if pool_name == MASTER_POOL_NAME else PoolRole.COMPUTE)

        fields = {
            'size': self.pool_size,
            'machine_type': self.machine_type,
            'disk_size_gb': self.disk_size,
            'os_version': self.coreos_version,
            'ssh_key': self.ssh_key,
            'labels': None if self.labels is None else parse_labels(self.labels),
            'taints': None if self.taints is None else parse_taints(self.taints),
            'kubelet_extra_args': self.kubelet_extra_args,
            'api_server_extra_args': self.api_server_extra_args,
            'controller_manager_extra_args': self.controller_manager_extra_args,
            'scheduler_extra_args': self.scheduler_extra_args,
        }

        return PoolSpec(name=pool_name, role=role, **{k: v for k, v in fields.items() if v is not None})


class PoolResultSchema(BaseModel):
    pool_name: str
    succeeded: bool
    error: str | None = None
    error_type: str | None = None

    @classmethod
    def from_result(cls, result: PoolResult) -> 'PoolResultSchema':
        return cls(
            pool_name=result.pool_name,
            succeeded=result.succeeded,
            error=str(result.error) if result.error else None,
            error_type=type(result.error).__name__ if result.error else None,
        )


class ClusterCreateResponseSchema(BaseModel):
    state: ObservedClusterState
    pools: list[PoolResultSchema] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: CreateClusterResult) -> 'ClusterCreateResponseSchema':
        return cls(state=result.state, pools=[PoolResultSchema.from_result(x) for x in result.pool_results])
