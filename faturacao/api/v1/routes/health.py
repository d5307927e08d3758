from fastapi import APIRouter

from faturacao.api.v1.envelope import ok
from faturacao.config.settings import settings

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=dict)
async def health():
    return ok(data={"app": settings.APP_NAME, "environment": settings.ENVIRONMENT}, message="Running")
