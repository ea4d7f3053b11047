from keto.core.kubernetes.assets import AssetBundle
from keto.core.kubernetes.cluster_state import (
    ClusterSummary,
    CreateClusterResult,
    NodeState,
    ObservedClusterState,
    ObservedPoolState,
    PoolResult,
)
from keto.core.kubernetes.configuration import MASTER_POOL_NAME, ClusterSpec, PoolRole, PoolSpec, TaintEffect

__all__ = [
    'MASTER_POOL_NAME',
    'AssetBundle',
    'ClusterSpec',
    'ClusterSummary',
    'CreateClusterResult',
    'NodeState',
    'ObservedClusterState',
    'ObservedPoolState',
    'PoolResult',
    'PoolRole',
    'PoolSpec',
    'TaintEffect',
]
