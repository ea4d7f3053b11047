from fastapi import APIRouter, Depends, status

from keto.api.dependencies import get_cluster_controller, load_assets
from keto.api.schemas.cluster import (
    ClusterCreateResponseSchema,
    ClusterCreateSchema,
    PoolCreateSchema,
    PoolUpdateSchema,
)
from keto.core.kubernetes import ClusterSummary, ObservedClusterState, ObservedPoolState
from keto.core.kubernetes.cluster_controller import ClusterController
from keto.core.utils import setup_logger

logger = setup_logger('APIClusterRouter')

router = APIRouter(prefix='/clouds/{cloud}')


@router.get('/clusters', response_model=list[ClusterSummary])
async def get_clusters(controller: ClusterController = Depends(get_cluster_controller)) -> list[ClusterSummary]:
    return await controller.get_clusters()


@router.post('/clusters', response_model=ClusterCreateResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_cluster(
    cloud: str,
    cluster: ClusterCreateSchema,
    controller: ClusterController = Depends(get_cluster_controller),
) -> ClusterCreateResponseSchema:
    logger.info(f'Received request to create cluster {cluster.name} on {cloud}')

    result = await controller.create_cluster(cluster.to_cluster_spec(cloud), load_assets(cluster.assets_dir))

    return ClusterCreateResponseSchema.from_result(result)


@router.get('/clusters/{cluster_name}', response_model=ObservedClusterState)
async def describe_cluster(
    cluster_name: str, controller: ClusterController = Depends(get_cluster_controller)
) -> ObservedClusterState:
    return await controller.describe_cluster(cluster_name)


@router.delete('/clusters/{cluster_name}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_cluster(cluster_name: str, controller: ClusterController = Depends(get_cluster_controller)) -> None:
    logger.info(f'Received request to delete cluster {cluster_name}')

    await controller.delete_cluster(cluster_name)


@router.post('/clusters/{cluster_name}/pools', response_model=ObservedClusterState, status_code=status.HTTP_201_CREATED)
async def create_pool(
    cluster_name: str,
    pool: PoolCreateSchema,
    controller: ClusterController = Depends(get_cluster_controller),
) -> ObservedClusterState:
    logger.info(f'Received request to create pool {pool.name} in cluster {cluster_name}')

    return await controller.create_compute_pool(cluster_name, pool.to_pool_spec(), load_assets(pool.assets_dir))


@router.get('/clusters/{cluster_name}/pools/{pool_name}', response_model=ObservedPoolState)
async def describe_pool(
    cluster_name: str, pool_name: str, controller: ClusterController = Depends(get_cluster_controller)
) -> ObservedPoolState:
    return await controller.describe_pool(cluster_name, pool_name)


@router.patch('/clusters/{cluster_name}/pools/{pool_name}', response_model=ObservedClusterState)
async def update_pool(
    cluster_name: str,
    pool_name: str,
    pool: PoolUpdateSchema,
    controller: ClusterController = Depends(get_cluster_controller),
) -> ObservedClusterState:
    logger.info(f'Received request to update pool {pool_name} of cluster {cluster_name}')

    return await controller.update_pool(
        cluster_name, pool.to_pool_spec(pool_name), cloud_provider_name=pool.cloud, internal=pool.internal
    )


@router.delete('/clusters/{cluster_name}/pools/{pool_name}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_pool(
    cluster_name: str, pool_name: str, controller: ClusterController = Depends(get_cluster_controller)
) -> None:
    logger.info(f'Received request to delete pool {pool_name} of cluster {cluster_name}')

    await controller.delete_cluster(cluster_name, pool_name)
