"""
Username normalization shared by the parser, the tally and the override layer.

Reddit names arrive in many shapes ("u/Fuzzy_Bear", "Fuzzy-Bear's", "FUZZY_BEAR"),
so everything that compares names goes through normalize_name first.
"""

import re
from typing import Optional

_NON_NAME_CHARS = re.compile(r'[^a-z0-9_]', re.IGNORECASE | re.ASCII)

# Grammatical particles the payer/beneficiary patterns tend to capture
STOP_WORDS = frozenset({
    'by',
    'to',
    'for',
    'and',
    'with',
    'on',
    'pls',
    'plz',
    'please',
    'me',
    'sir',
    'senor',
})


def normalize_name(value: Optional[str]) -> str:
    """
    Canonicalize a free-text name token to a comparable key.

    Characters outside [a-z0-9_] are deleted, not replaced, and the result
    is lowercased. Idempotent.

    Examples:
        >>> normalize_name("Fuzzy-Bear!")
        'fuzzybear'
        >>> normalize_name("u/Some_User")
        'usome_user'
    """
    return _NON_NAME_CHARS.sub('', value or '').lower()


def is_valid_username_candidate(candidate: str) -> bool:
    """A normalized candidate is usable unless empty or a stop word."""
    if not candidate:
        return False
    return candidate not in STOP_WORDS


def resolve_candidate(token: Optional[str]) -> Optional[str]:
    """Normalize a captured token, returning None when it is not a usable name."""
    candidate = normalize_name(token)
    return candidate if is_valid_username_candidate(candidate) else None
