"""
Runs API router: create runs from Reddit threads, read them back with
effective values, and manage access codes.
"""

import logging
import re
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel

from raffle.services.access import AccessDenied, AccessService
from raffle.services.ingestion import RunIngestionService
from raffle.services.reddit import InvalidRedditUrl, RedditFetchError
from raffle.services.tally import effective_values, row_override, tally_by_payer

router = APIRouter(prefix="/runs", tags=["runs"])
logger = logging.getLogger(__name__)

_BEARER = re.compile(r'^Bearer\s+(.+)$', re.IGNORECASE)


class CreateRunRequest(BaseModel):
    """Request model for creating a run."""
    url: str


class CreateRunResponse(BaseModel):
    """Response model for a newly created run."""
    run_id: str
    share_url: str
    admin_code: str
    title: str
    total_spots_from_title: Optional[int] = None
    raffle_tool_block: Optional[str] = None


class InviteRequest(BaseModel):
    """Request model for creating an invite code."""
    admin_code: str
    role: str
    label: Optional[str] = None


class RedeemRequest(BaseModel):
    """Request model for redeeming an access code."""
    code: str


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an `Authorization: Bearer ...` header."""
    match = _BEARER.match(authorization or '')
    return match.group(1).strip() if match else None


@router.post("", response_model=CreateRunResponse)
async def create_run(request: CreateRunRequest):
    """
    Create a run from a Reddit thread URL.

    This endpoint:
    1. Fetches the thread and its top-level comments
    2. Parses each comment into a baseline record
    3. Returns a share URL and a one-time admin code
    """
    try:
        ingestion = RunIngestionService()
        summary = ingestion.create_run(request.url)
        return CreateRunResponse(**summary)

    except InvalidRedditUrl as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RedditFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error("Run creation failed", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create run: {str(e)}"
        )


@router.get("/{run_id}")
async def get_run(
    run_id: str,
    t: Optional[str] = Query(None, description="Session token"),
    authorization: Optional[str] = Header(None),
):
    """
    Read a run with every comment's baseline, override and effective values.

    Requires a session token (bearer header or `t` query parameter).
    """
    try:
        access = AccessService()
        access.verify_session(run_id, bearer_token(authorization) or t)

        ingestion = RunIngestionService(supabase=access.supabase)
        data = ingestion.get_run(run_id)
        if data is None:
            raise HTTPException(status_code=404, detail=f"Run {run_id} not found")

        comments = []
        for row in data['comments']:
            override = row_override(row)
            comments.append({
                **row,
                'override_version': (override or {}).get('version', 0),
                'effective': asdict(effective_values(row, override)),
            })

        return {
            'run': data['run'],
            'comments': comments,
            'tally': [asdict(entry) for entry in tally_by_payer(data['comments'])],
        }

    except AccessDenied as e:
        raise HTTPException(status_code=401, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to load run", exc_info=True, extra={"run_id": run_id})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to load run: {str(e)}"
        )


@router.post("/{run_id}/invites")
async def create_invite(run_id: str, request: InviteRequest):
    """Create a viewer or editor code; requires the run's admin code."""
    try:
        access = AccessService()
        invite_code = access.create_invite(run_id, request.admin_code, request.role, request.label)
        return {'invite_code': invite_code, 'role': request.role}

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AccessDenied as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error("Invite creation failed", exc_info=True, extra={"run_id": run_id})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create invite: {str(e)}"
        )


@router.post("/{run_id}/redeem")
async def redeem_code(run_id: str, request: RedeemRequest):
    """Exchange an access code for a session token."""
    if not request.code.strip():
        raise HTTPException(status_code=400, detail="code required")

    try:
        access = AccessService()
        return access.redeem(run_id, request.code)

    except AccessDenied as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error("Code redemption failed", exc_info=True, extra={"run_id": run_id})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to redeem code: {str(e)}"
        )
