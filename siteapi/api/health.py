"""
Health and version endpoints - no authentication required
"""
from fastapi import APIRouter

from .. import config
from .responses import success_response

router = APIRouter()


# Unauthenticated probe for kube/docker HEALTHCHECKs
@router.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}


@router.get(f"{config.API_PREFIX}/version")
async def get_version():
    return success_response({
        "name": config.APP_NAME,
        "api_version": "v1",
        "version": config.API_VERSION,
        "environment": config.get_environment(),
    })
