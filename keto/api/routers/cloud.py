from fastapi import APIRouter, Depends

from keto.api.dependencies import get_provider_registry
from keto.core.config import VERSION
from keto.core.providers.provider_factory import ProviderRegistry

router = APIRouter()


@router.get('/version', response_model=dict)
def get_version() -> dict:
    return {'version': VERSION}


@router.get('/clouds', response_model=list[str])
def get_clouds(registry: ProviderRegistry = Depends(get_provider_registry)) -> list[str]:
    return registry.names()
