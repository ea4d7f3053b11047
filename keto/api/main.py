from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from keto.api.routers.cloud import router as cloud_router
from keto.api.routers.cluster import router as cluster_router
from keto.core.config import VERSION
from keto.core.exceptions import (
    AlreadyExistsError,
    InvalidSpecError,
    KetoError,
    MissingAssetError,
    NotFoundError,
    OperationTimeoutError,
    ProviderError,
)
from keto.core.utils import setup_logger

logger = setup_logger('API')

ERROR_STATUS_CODES: dict[type[KetoError], int] = {
    InvalidSpecError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    MissingAssetError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    ProviderError: status.HTTP_502_BAD_GATEWAY,
    OperationTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
}

app = FastAPI(title='keto', version=VERSION)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    exc_str = f'{exc}'.replace('\n', ' ').replace('   ', ' ')
    logger.error(f"{request.url.path}: {exc_str}")
    content = {'error': 'RequestValidationError', 'message': exc_str}
    return JSONResponse(content=content, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(KetoError)
async def keto_exception_handler(request: Request, exc: KetoError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    logger.error(f'{request.method} {request.url.path} failed: {exc}')
    content = {'error': type(exc).__name__, 'message': str(exc)}
    return JSONResponse(content=content, status_code=status_code)


app.include_router(cloud_router)
app.include_router(cluster_router)
