"""
Admin maintenance endpoints
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from ..auth import CurrentUser, require_admin
from ..cache import (
    AVAILABILITY_PREFIX,
    ORDERS_PREFIX,
    SESSIONS_PREFIX,
    USERS_PREFIX,
    get_cache,
    invalidate_namespaces,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])

CLEARABLE_PREFIXES = (ORDERS_PREFIX, SESSIONS_PREFIX, AVAILABILITY_PREFIX, USERS_PREFIX)


class CacheClearRequest(BaseModel):
    prefix: str

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v):
        if v not in CLEARABLE_PREFIXES:
            raise ValueError(f"prefix must be one of {', '.join(CLEARABLE_PREFIXES)}")
        return v


class CacheClearResult(BaseModel):
    success: bool
    cleared: int


@router.post("/cache/clear", response_model=CacheClearResult)
async def clear_cache(
    data: CacheClearRequest,
    admin: CurrentUser = Depends(require_admin),
    cache=Depends(get_cache),
):
    """Drop every cached entry under one namespace"""
    cleared = invalidate_namespaces(cache, data.prefix)
    logger.info(f"🧹 {admin.email} cleared {cleared} cache entries under {data.prefix}")
    return CacheClearResult(success=True, cleared=cleared)
