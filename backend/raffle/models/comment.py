"""
Pydantic models for parsed comments.
"""

from pydantic import BaseModel, model_validator
from typing import Any, Dict, Optional, Tuple


class ParsedComment(BaseModel):
    """
    Parser baseline for one raffle comment.

    Produced once per comment and never mutated; human corrections live in
    a separate CommentOverride record.
    """
    comment_id: str
    author: str
    raw: str
    specific_spots: Tuple[int, ...] = ()
    random_spots: int = 0
    spots: int = 0
    beneficiary: str
    payer: str
    is_tab: bool = False
    needs_review: bool = False

    class Config:
        frozen = True

    @model_validator(mode='after')
    def _check_spot_total(self):
        expected = len(self.specific_spots) + self.random_spots
        if self.spots != expected:
            raise ValueError(f"spots must equal {expected}, got {self.spots}")
        return self

    def to_row(
        self,
        run_id: str,
        permalink: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Shape the baseline as a `comments` table row."""
        row = {
            'run_id': run_id,
            'comment_id': self.comment_id,
            'author': self.author,
            'body': self.raw,
            'permalink': permalink,
            'spots': self.spots,
            'payer': self.payer,
            'beneficiary': self.beneficiary,
            'is_tab': self.is_tab,
            'needs_review': self.needs_review,
            'parsed': self.model_dump(mode='json'),
        }
        if extra:
            row.update(extra)
        return row


class ParseRequest(BaseModel):
    """Request model for parsing a single comment."""
    body: str = ""
    author: str = ""
    comment_id: str = ""


class ParseResponse(BaseModel):
    """Response model for the parse endpoint."""
    parser_version: str
    comment: ParsedComment
