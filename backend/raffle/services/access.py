"""
Access codes and sessions for runs.

Only SHA-256 hashes of codes are stored. A code is redeemed for a bearer
session token that carries the code's role.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from raffle.config import settings
from raffle.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)

ROLES = ('viewer', 'editor', 'admin')
INVITE_ROLES = ('viewer', 'editor')
EDIT_ROLES = ('editor', 'admin')


class AccessDenied(Exception):
    """Raised for invalid, revoked or expired codes and sessions."""


def generate_access_code(num_bytes: int = 16) -> str:
    """Human-typeable code, e.g. "9F3A-01BC-77DE"."""
    raw = secrets.token_hex(num_bytes).upper()
    return f"{raw[0:4]}-{raw[4:8]}-{raw[8:12]}"


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode('utf-8')).hexdigest()


def generate_session_token(num_bytes: int = 32) -> str:
    return secrets.token_hex(num_bytes)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_expired(value: Any, now: datetime) -> bool:
    expires_at = _parse_timestamp(value)
    return expires_at is not None and expires_at < now


class AccessService:
    """Issues, verifies and redeems run access codes."""

    def __init__(self, supabase=None):
        self.supabase = supabase or get_supabase_client()

    def issue_code(self, run_id: str, role: str, label: Optional[str] = None) -> str:
        """
        Create a new code for a run.

        Returns:
            The plain code; it is not recoverable afterwards
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")

        code = generate_access_code()
        self.supabase.table('run_access_codes').insert({
            'run_id': run_id,
            'code_hash': hash_code(code),
            'role': role,
            'label': label,
            'revoked': False,
        }).execute()

        logger.info("Issued access code", extra={"run_id": run_id, "role": role})
        return code

    def create_invite(
        self,
        run_id: str,
        admin_code: str,
        role: str,
        label: Optional[str] = None,
    ) -> str:
        """Admins hand out viewer or editor codes."""
        if role not in INVITE_ROLES:
            raise ValueError("role must be viewer or editor")

        if not self._find_code(run_id, admin_code, role='admin'):
            raise AccessDenied("Invalid admin code")

        return self.issue_code(run_id, role, label=label)

    def redeem(self, run_id: str, code: str) -> Dict[str, str]:
        """
        Exchange a code for a session token.

        Returns:
            {'token', 'role', 'expires_at'}

        Raises:
            AccessDenied: unknown, revoked or expired code
        """
        now = datetime.now(timezone.utc)
        match = self._find_code(run_id, code)
        if not match:
            raise AccessDenied("Invalid code")
        if _is_expired(match.get('expires_at'), now):
            raise AccessDenied("Code expired")

        token = generate_session_token()
        expires_at = (now + timedelta(days=settings.SESSION_TTL_DAYS)).isoformat()

        self.supabase.table('run_sessions').insert({
            'run_id': run_id,
            'token': token,
            'role': match['role'],
            'expires_at': expires_at,
        }).execute()

        logger.info("Redeemed access code", extra={"run_id": run_id, "role": match['role']})
        return {'token': token, 'role': match['role'], 'expires_at': expires_at}

    def verify_session(self, run_id: str, token: Optional[str]) -> str:
        """
        Check a bearer token for a run.

        Returns:
            The session's role

        Raises:
            AccessDenied: missing, unknown or expired token
        """
        if not token:
            raise AccessDenied("Missing token")

        response = self.supabase.table('run_sessions').select('*').eq(
            'run_id', run_id
        ).eq('token', token).limit(1).execute()

        if not response.data:
            raise AccessDenied("Invalid token")

        session = response.data[0]
        if _is_expired(session.get('expires_at'), datetime.now(timezone.utc)):
            raise AccessDenied("Session expired")

        return session['role']

    def _find_code(self, run_id: str, code: str, role: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if not code:
            return None

        query = self.supabase.table('run_access_codes').select('*').eq(
            'run_id', run_id
        ).eq(
            'code_hash', hash_code(code.strip().upper())
        ).eq('revoked', False)

        if role:
            query = query.eq('role', role)

        response = query.execute()
        return response.data[0] if response.data else None
