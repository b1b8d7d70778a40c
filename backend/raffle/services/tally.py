"""
Effective values and per-payer tallies.

Display and tally numbers are "override if present, else baseline". The
baseline rows themselves are never rewritten.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from raffle.models.override import CommentOverride
from raffle.utils.names import normalize_name

OverrideLike = Union[CommentOverride, Mapping[str, Any], None]


@dataclass(frozen=True)
class EffectiveValues:
    spots: int
    payer: str
    beneficiary: str
    skipped: bool = False


@dataclass
class PayerTally:
    """
    Spots one payer is responsible for.

    self_claimed: spots the payer claimed in their own comments
    owes_for: spots other commenters put on this payer
    """
    user: str
    self_claimed: int = 0
    owes_for: int = 0


def _override_dict(override: OverrideLike) -> Dict[str, Any]:
    if override is None:
        return {}
    if isinstance(override, CommentOverride):
        return override.model_dump()
    return dict(override)


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


def effective_values(row: Mapping[str, Any], override: OverrideLike = None) -> EffectiveValues:
    """
    Merge a baseline comment row with its override.

    Spots are clamped at zero and a blank payer becomes "unknown".
    """
    ov = _override_dict(override)

    override_spots = ov.get('override_spots')
    spots = override_spots if isinstance(override_spots, int) else row.get('spots') or 0

    payer = _strip(ov.get('override_payer'))
    if payer is None:
        payer = _strip(row.get('payer')) or ''
    payer = payer or 'unknown'

    beneficiary = _strip(ov.get('override_beneficiary'))
    if beneficiary is None:
        beneficiary = _strip(row.get('beneficiary')) or ''

    return EffectiveValues(
        spots=max(0, spots),
        payer=payer,
        beneficiary=beneficiary,
        skipped=bool(ov.get('skipped', False)),
    )


def row_override(row: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Pull the embedded override out of a comments row.

    Supabase returns the `comment_overrides` join as a list (or a single
    object for one-to-one relations); an empty join means no override.
    """
    embedded = row.get('comment_overrides')
    if isinstance(embedded, list):
        return embedded[0] if embedded else None
    return embedded or None


def tally_by_payer(
    rows: Iterable[Mapping[str, Any]],
    overrides: Optional[Mapping[str, OverrideLike]] = None,
) -> List[PayerTally]:
    """
    Sum effective spots per payer, skipping rows a reviewer marked skipped.

    Args:
        rows: Baseline comment rows (author, payer, beneficiary, spots, ...)
        overrides: Optional overrides keyed by comment_id; when omitted the
            override embedded in each row is used

    Returns:
        One PayerTally per payer, sorted by user
    """
    acc: Dict[str, PayerTally] = {}

    for row in rows:
        if overrides is not None:
            override = overrides.get(row.get('comment_id'))
        else:
            override = row_override(row)

        values = effective_values(row, override)
        if values.skipped:
            continue

        payer_key = normalize_name(values.payer) or 'unknown'
        author_key = normalize_name(row.get('author'))

        entry = acc.setdefault(payer_key, PayerTally(user=payer_key))
        if payer_key == author_key:
            entry.self_claimed += values.spots
        else:
            entry.owes_for += values.spots

    return sorted(acc.values(), key=lambda t: t.user)
