"""
Override service: versioned human corrections keyed by (run_id, comment_id).

Writes use optimistic concurrency. The first write for a key must expect
version 0 and creates version 1; every later write must expect the stored
version, and a successful write increments it. The parser baseline is
never touched.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from raffle.models.override import CommentOverride, OverridePatch
from raffle.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)


class OverrideConflict(Exception):
    """Raised when expected_version does not match the stored version."""

    def __init__(self, latest: Optional[CommentOverride]):
        self.latest = latest
        super().__init__(
            "Override version conflict"
            + (f" (stored version {latest.version})" if latest else "")
        )


class OverrideStore:
    """Storage contract for override rows."""

    def get(self, run_id: str, comment_id: str) -> Optional[CommentOverride]:
        raise NotImplementedError

    def insert(self, record: CommentOverride) -> bool:
        """Insert a new row; False if the key already exists."""
        raise NotImplementedError

    def update(self, record: CommentOverride, expected_version: int) -> bool:
        """Replace the row only if it still has expected_version."""
        raise NotImplementedError

    def list_for_run(self, run_id: str) -> List[CommentOverride]:
        raise NotImplementedError


class InMemoryOverrideStore(OverrideStore):
    """Process-local store; used for tests and local runs without Supabase."""

    def __init__(self):
        self._rows: Dict[Tuple[str, str], CommentOverride] = {}
        self._lock = threading.Lock()

    def get(self, run_id: str, comment_id: str) -> Optional[CommentOverride]:
        with self._lock:
            return self._rows.get((run_id, comment_id))

    def insert(self, record: CommentOverride) -> bool:
        key = (record.run_id, record.comment_id)
        with self._lock:
            if key in self._rows:
                return False
            self._rows[key] = record
            return True

    def update(self, record: CommentOverride, expected_version: int) -> bool:
        key = (record.run_id, record.comment_id)
        with self._lock:
            current = self._rows.get(key)
            if current is None or current.version != expected_version:
                return False
            self._rows[key] = record
            return True

    def list_for_run(self, run_id: str) -> List[CommentOverride]:
        with self._lock:
            return [row for (rid, _), row in self._rows.items() if rid == run_id]


class SupabaseOverrideStore(OverrideStore):
    """Override rows in the `comment_overrides` table."""

    TABLE = 'comment_overrides'

    def __init__(self, supabase=None):
        self.supabase = supabase or get_supabase_client()

    def get(self, run_id: str, comment_id: str) -> Optional[CommentOverride]:
        response = self.supabase.table(self.TABLE).select('*').eq(
            'run_id', run_id
        ).eq('comment_id', comment_id).limit(1).execute()

        if not response.data:
            return None
        return CommentOverride(**response.data[0])

    def insert(self, record: CommentOverride) -> bool:
        try:
            response = self.supabase.table(self.TABLE).insert(record.model_dump()).execute()
        except Exception as e:
            # Unique (run_id, comment_id) violation: someone else created it first
            logger.warning("Override insert rejected", extra={
                "run_id": record.run_id,
                "comment_id": record.comment_id,
                "error": str(e)
            })
            return False
        return bool(response.data)

    def update(self, record: CommentOverride, expected_version: int) -> bool:
        response = self.supabase.table(self.TABLE).update(record.fields()).eq(
            'run_id', record.run_id
        ).eq(
            'comment_id', record.comment_id
        ).eq(
            'version', expected_version
        ).execute()
        return bool(response.data)

    def list_for_run(self, run_id: str) -> List[CommentOverride]:
        response = self.supabase.table(self.TABLE).select('*').eq('run_id', run_id).execute()
        return [CommentOverride(**row) for row in response.data or []]


class OverrideService:
    """Applies reviewer patches with version checks."""

    def __init__(self, store: Optional[OverrideStore] = None):
        self.store = store or SupabaseOverrideStore()

    def apply(
        self,
        run_id: str,
        comment_id: str,
        patch: OverridePatch,
        expected_version: int,
    ) -> CommentOverride:
        """
        Write a patch for one comment.

        Args:
            run_id: Run the comment belongs to
            comment_id: Reddit comment id
            patch: Reviewer corrections
            expected_version: Version the caller last saw (0 = no override yet)

        Returns:
            The stored record with its new version

        Raises:
            OverrideConflict: expected_version is stale; carries the stored row
        """
        existing = self.store.get(run_id, comment_id)

        if existing is None:
            if expected_version != 0:
                raise OverrideConflict(None)
            record = CommentOverride.first(run_id, comment_id, patch)
            if not self.store.insert(record):
                raise OverrideConflict(self.store.get(run_id, comment_id))
            logger.info("Created override", extra={
                "run_id": run_id,
                "comment_id": comment_id,
                "version": record.version
            })
            return record

        if existing.version != expected_version:
            raise OverrideConflict(existing)

        record = existing.merged(patch)
        if not self.store.update(record, expected_version):
            raise OverrideConflict(self.store.get(run_id, comment_id))

        logger.info("Updated override", extra={
            "run_id": run_id,
            "comment_id": comment_id,
            "version": record.version
        })
        return record

    def for_run(self, run_id: str) -> Dict[str, CommentOverride]:
        """Overrides of one run, keyed by comment id."""
        return {row.comment_id: row for row in self.store.list_for_run(run_id)}
