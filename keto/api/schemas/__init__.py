from keto.api.schemas.cluster import (
    ClusterCreateResponseSchema,
    ClusterCreateSchema,
    PoolCreateSchema,
    PoolResultSchema,
    PoolUpdateSchema,
)

__all__ = [
    'ClusterCreateResponseSchema',
    'ClusterCreateSchema',
    'PoolCreateSchema',
    'PoolResultSchema',
    'PoolUpdateSchema',
]
