"""
Parse API router for running the comment parser without persistence.
"""

from fastapi import APIRouter

from raffle.models.comment import ParseRequest, ParseResponse
from raffle.services.parser import PARSER_VERSION, parse_comment

router = APIRouter(prefix="/parse", tags=["parse"])


@router.post("", response_model=ParseResponse)
async def parse_single_comment(request: ParseRequest):
    """
    Parse one comment and return the baseline record.

    Useful for checking how a phrasing will be read before a run is created.
    """
    parsed = parse_comment(request.body, request.author, request.comment_id)
    return ParseResponse(parser_version=PARSER_VERSION, comment=parsed)
