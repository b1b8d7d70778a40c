"""
Override API router for reviewer corrections.

Corrections never touch the parser baseline; they are stored as versioned
override rows and a stale expected_version is answered with 409.
"""

import logging

from fastapi import APIRouter, Header, HTTPException
from fastapi.responses import JSONResponse
from typing import Optional

from raffle.models.override import OverridePatch, OverrideRequest, OverrideResponse
from raffle.routers.runs import bearer_token
from raffle.services.access import EDIT_ROLES, AccessDenied, AccessService
from raffle.services.overrides import OverrideConflict, OverrideService, SupabaseOverrideStore

router = APIRouter(prefix="/runs", tags=["overrides"])
logger = logging.getLogger(__name__)


@router.post(
    "/{run_id}/comments/{comment_id}/override",
    response_model=OverrideResponse,
)
async def write_override(
    run_id: str,
    comment_id: str,
    request: OverrideRequest,
    authorization: Optional[str] = Header(None),
):
    """
    Write a correction for one comment.

    Args:
        request: Patch plus expected_version (0 when no override exists yet)

    Returns:
        The new version, or 409 with the latest stored row on conflict
    """
    try:
        access = AccessService()
        role = access.verify_session(run_id, bearer_token(authorization))
        if role not in EDIT_ROLES:
            raise HTTPException(status_code=403, detail="Editor access required")

        service = OverrideService(SupabaseOverrideStore(access.supabase))
        patch = OverridePatch(**request.model_dump(exclude={'expected_version'}))
        record = service.apply(run_id, comment_id, patch, request.expected_version)

        return OverrideResponse(ok=True, version=record.version)

    except OverrideConflict as e:
        logger.info("Override conflict", extra={
            "run_id": run_id,
            "comment_id": comment_id,
            "expected_version": request.expected_version
        })
        return JSONResponse(status_code=409, content={
            'error': 'Conflict',
            'latest': e.latest.model_dump() if e.latest else None,
        })
    except AccessDenied as e:
        raise HTTPException(status_code=401, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Override write failed", exc_info=True, extra={
            "run_id": run_id,
            "comment_id": comment_id
        })
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save override: {str(e)}"
        )
