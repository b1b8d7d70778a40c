"""
Pydantic models for human overrides layered over the parser baseline.
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional


class OverridePatch(BaseModel):
    """Fields a reviewer may correct. None means "leave as is"."""
    skipped: Optional[bool] = None
    override_spots: Optional[int] = None
    override_payer: Optional[str] = None
    override_beneficiary: Optional[str] = None


class OverrideRequest(OverridePatch):
    """Request model for writing an override."""
    expected_version: int


class CommentOverride(BaseModel):
    """Stored override row, keyed by (run_id, comment_id)."""
    run_id: str
    comment_id: str
    skipped: bool = False
    override_spots: Optional[int] = None
    override_payer: Optional[str] = None
    override_beneficiary: Optional[str] = None
    version: int = 1

    class Config:
        from_attributes = True

    @classmethod
    def first(cls, run_id: str, comment_id: str, patch: OverridePatch) -> "CommentOverride":
        """Build the version-1 record for a key that has no override yet."""
        return cls(
            run_id=run_id,
            comment_id=comment_id,
            skipped=bool(patch.skipped),
            override_spots=patch.override_spots,
            override_payer=patch.override_payer,
            override_beneficiary=patch.override_beneficiary,
            version=1,
        )

    def merged(self, patch: OverridePatch) -> "CommentOverride":
        """Apply a patch on top of this record and bump the version."""
        return self.model_copy(update={
            'skipped': patch.skipped if isinstance(patch.skipped, bool) else self.skipped,
            'override_spots': (
                patch.override_spots if patch.override_spots is not None else self.override_spots
            ),
            'override_payer': (
                patch.override_payer if patch.override_payer is not None else self.override_payer
            ),
            'override_beneficiary': (
                patch.override_beneficiary
                if patch.override_beneficiary is not None
                else self.override_beneficiary
            ),
            'version': self.version + 1,
        })

    def fields(self) -> Dict[str, Any]:
        """Mutable columns only (no key columns)."""
        return self.model_dump(exclude={'run_id', 'comment_id'})


class OverrideResponse(BaseModel):
    """Response model for a successful override write."""
    ok: bool = True
    version: int
