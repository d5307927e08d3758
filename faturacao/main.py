import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from faturacao.api.v1 import v1_router
from faturacao.api.v1.envelope import error
from faturacao.config.settings import settings
from faturacao.core.logging_config import setup_logging
from faturacao.domain.exceptions import FiscalError, RateStoreUnavailableError, SeriesNotAuthorizedError

setup_logging()
logger = logging.getLogger("main")

app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)


@app.exception_handler(FiscalError)
async def fiscal_error_handler(request: Request, exc: FiscalError):
    if isinstance(exc, SeriesNotAuthorizedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, RateStoreUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    detail = {"type": type(exc).__name__}
    if getattr(exc, "field", None):
        detail["field"] = exc.field
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content=error(str(exc), errors=[detail]))


app.include_router(v1_router)
