from __future__ import annotations

import re
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from keto.core.config import DEFAULT_KUBE_VERSION, DEFAULT_MASTER_POOL_SIZE
from keto.core.exceptions import InvalidSpecError

if TYPE_CHECKING:
    from keto.core.providers.base_provider import ProviderDefaults

MASTER_POOL_NAME = 'master'

# DNS-1123 label, providers derive resource names from cluster and pool names
NAME_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
NAME_MAX_LENGTH = 63

KUBE_VERSION_PATTERN = re.compile(r'^v?\d+\.\d+\.\d+(-[0-9A-Za-z.-]+)?(\+[0-9A-Za-z.-]+)?$')

# label and taint syntax as enforced by the API server
LABEL_NAME_PATTERN = re.compile(r'^[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$')
LABEL_NAME_MAX_LENGTH = 63
DNS_NAME_MAX_LENGTH = 253
DNS_NAME_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$')
# networks and OS channels end up as single tokens in the userdata
TOKEN_PATTERN = re.compile(r'^[A-Za-z0-9][-A-Za-z0-9_./:]*$')

MASTER_EXTRA_ARGS_FIELDS = ('api_server_extra_args', 'controller_manager_extra_args', 'scheduler_extra_args')
EXTRA_ARGS_FIELDS = ('kubelet_extra_args', *MASTER_EXTRA_ARGS_FIELDS)


class PoolRole(StrEnum):
    MASTER = 'master'
    COMPUTE = 'compute'


class TaintEffect(StrEnum):
    NO_SCHEDULE = 'NoSchedule'
    PREFER_NO_SCHEDULE = 'PreferNoSchedule'
    NO_EXECUTE = 'NoExecute'


class PoolSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    role: PoolRole
    size: int | None = None
    machine_type: str | None = None
    disk_size_gb: int | None = None
    os_version: str | None = None
    ssh_key: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    # key -> (value, effect)
    taints: dict[str, tuple[str, str]] = Field(default_factory=dict)
    kubelet_extra_args: str = ''
    api_server_extra_args: str = ''
    controller_manager_extra_args: str = ''
    scheduler_extra_args: str = ''

    @classmethod
    def master(cls, **kwargs) -> PoolSpec:
        return cls(name=MASTER_POOL_NAME, role=PoolRole.MASTER, **kwargs)

    @classmethod
    def compute(cls, name: str, **kwargs) -> PoolSpec:
        return cls(name=name, role=PoolRole.COMPUTE, **kwargs)

    @property
    def is_master(self) -> bool:
        return self.role == PoolRole.MASTER


class ClusterSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    cloud_provider_name: str
    internal: bool = False
    networks: list[str] = Field(default_factory=list)
    dns_zone: str | None = None
    kube_version: str | None = None
    master_pool: PoolSpec
    compute_pools: dict[str, PoolSpec] = Field(default_factory=dict)

    def pools(self) -> list[PoolSpec]:
        return [self.master_pool, *self.compute_pools.values()]


def _check_name(kind: str, name: str) -> list[str]:
    if not name:
        return [f'{kind} name must not be empty']

    if len(name) > NAME_MAX_LENGTH or not NAME_PATTERN.fullmatch(name):
        return [f"{kind} name '{name}' must be a lowercase DNS label of at most {NAME_MAX_LENGTH} characters"]

    return []


def _is_label_key(key: str) -> bool:
    prefix, sep, name = key.rpartition('/')

    if sep and (len(prefix) > DNS_NAME_MAX_LENGTH or not DNS_NAME_PATTERN.fullmatch(prefix)):
        return False

    return len(name) <= LABEL_NAME_MAX_LENGTH and bool(LABEL_NAME_PATTERN.fullmatch(name))


def _is_label_value(value: str) -> bool:
    return not value or (len(value) <= LABEL_NAME_MAX_LENGTH and bool(LABEL_NAME_PATTERN.fullmatch(value)))


def pool_spec_problems(pool: PoolSpec) -> list[str]:
    problems = _check_name('Pool', pool.name)

    if pool.is_master and pool.name != MASTER_POOL_NAME:
        problems.append(f"Master pool must be named '{MASTER_POOL_NAME}', got '{pool.name}'")

    if not pool.is_master:
        if pool.name == MASTER_POOL_NAME:
            problems.append(f"Compute pool name '{MASTER_POOL_NAME}' is reserved for the master pool")

        for field_name in MASTER_EXTRA_ARGS_FIELDS:
            if getattr(pool, field_name):
                problems.append(f"Compute pool '{pool.name}' cannot set {field_name}")

    for field_name in EXTRA_ARGS_FIELDS:
        if not getattr(pool, field_name).isprintable():
            problems.append(f"Pool '{pool.name}' {field_name} must be a single line of printable characters")

    if pool.size is not None and pool.size < 0:
        problems.append(f"Pool '{pool.name}' size must be >= 0, got {pool.size}")

    if pool.disk_size_gb is not None and pool.disk_size_gb <= 0:
        problems.append(f"Pool '{pool.name}' disk size must be positive, got {pool.disk_size_gb}")

    if pool.os_version is not None and not TOKEN_PATTERN.fullmatch(pool.os_version):
        problems.append(f"Pool '{pool.name}' OS version {pool.os_version!r} must be a single word")

    for key, value in pool.labels.items():
        if not _is_label_key(key):
            problems.append(f"Pool '{pool.name}' label key {key!r} is not a valid label name")
        if not _is_label_value(value):
            problems.append(f"Pool '{pool.name}' label {key!r} has invalid value {value!r}")

    for key, (value, effect) in pool.taints.items():
        if not _is_label_key(key):
            problems.append(f"Pool '{pool.name}' taint key {key!r} is not a valid label name")
        if not _is_label_value(value):
            problems.append(f"Pool '{pool.name}' taint {key!r} has invalid value {value!r}")
        if effect not in list(TaintEffect):
            problems.append(
                f"Pool '{pool.name}' taint '{key}' has invalid effect '{effect}', "
                f'must be one of {[x.value for x in TaintEffect]}'
            )

    return problems


def validate_pool_spec(pool: PoolSpec) -> None:
    problems = pool_spec_problems(pool)

    if problems:
        raise InvalidSpecError(problems)


def validate_cluster_spec(spec: ClusterSpec) -> None:
    """Check the cluster invariants, raising InvalidSpecError with every problem found."""
    problems = _check_name('Cluster', spec.name)

    if not spec.cloud_provider_name:
        problems.append('Cloud provider name must not be empty')

    if spec.kube_version is not None and not KUBE_VERSION_PATTERN.fullmatch(spec.kube_version):
        problems.append(f"Kubernetes version '{spec.kube_version}' is not a semantic version")

    if len(set(spec.networks)) != len(spec.networks):
        problems.append(f'Networks must not contain duplicates: {spec.networks}')

    for network in spec.networks:
        if not TOKEN_PATTERN.fullmatch(network):
            problems.append(f'Network {network!r} must be a single word of letters, digits and -_./:')

    if spec.dns_zone is not None and (
        len(spec.dns_zone) > DNS_NAME_MAX_LENGTH or not DNS_NAME_PATTERN.fullmatch(spec.dns_zone)
    ):
        problems.append(f'DNS zone {spec.dns_zone!r} must be a lowercase DNS name')

    if spec.master_pool.role != PoolRole.MASTER:
        problems.append('Master pool must have the master role')

    problems.extend(pool_spec_problems(spec.master_pool))

    for key, pool in spec.compute_pools.items():
        if pool.role != PoolRole.COMPUTE:
            problems.append(f"Pool '{key}' must have the compute role")
        if key != pool.name:
            problems.append(f"Compute pool key '{key}' does not match pool name '{pool.name}'")
        problems.extend(pool_spec_problems(pool))

    if problems:
        raise InvalidSpecError(problems)


def apply_pool_defaults(pool: PoolSpec, defaults: ProviderDefaults) -> PoolSpec:
    default_size = DEFAULT_MASTER_POOL_SIZE if pool.is_master else defaults.compute_pool_size

    return pool.model_copy(
        update={
            'size': pool.size if pool.size is not None else default_size,
            'disk_size_gb': pool.disk_size_gb or defaults.disk_size_gb,
            'os_version': pool.os_version or defaults.os_version,
        }
    )


def apply_defaults(spec: ClusterSpec, defaults: ProviderDefaults) -> ClusterSpec:
    """Return a copy of ``spec`` with every unset field filled in."""
    return spec.model_copy(
        update={
            'kube_version': spec.kube_version or defaults.kube_version or DEFAULT_KUBE_VERSION,
            'master_pool': apply_pool_defaults(spec.master_pool, defaults),
            'compute_pools': {
                name: apply_pool_defaults(pool, defaults) for name, pool in spec.compute_pools.items()
            },
        }
    )
