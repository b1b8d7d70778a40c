"""
Comment parser service for extracting raffle claims from Reddit comments.

The parser is a fixed sequence of passes over a shrinking working text:
random-spot phrases are counted and erased first, then specific spots are
read from whatever is left, so no number is ever counted twice. Payer and
beneficiary detection read the untouched body.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from raffle.models.comment import ParsedComment
from raffle.utils.names import normalize_name, resolve_candidate
from raffle.utils.rules import (
    BARE_TAB_KEYWORDS,
    BENEFICIARY_RULE,
    MAX_RANGE_WIDTH,
    PAYER_RULES,
    RANDOM_RULES,
    RANGE_RULE,
    REVIEW_HINTS,
    SPECIFIC_RULES,
    TAB_KEYWORDS,
    WORD_NUMBERS,
    PatternSpec,
    RuleKind,
)

logger = logging.getLogger(__name__)

# Stored with every baseline; bump whenever extraction behaviour changes
PARSER_VERSION = "1.0.0"


def _to_int(token: str) -> Optional[int]:
    try:
        return int(token)
    except (TypeError, ValueError):
        return None


def _record(debug: Optional[Dict[str, Any]], rule: PatternSpec, count: int) -> None:
    if debug is not None and count:
        debug.setdefault('patterns_matched', {})[rule.name] = count


class CommentParser:
    """Service for parsing raffle comments into ParsedComment records."""

    def __init__(
        self,
        payer_rules: Tuple[PatternSpec, ...] = PAYER_RULES,
        random_rules: Tuple[PatternSpec, ...] = RANDOM_RULES,
        specific_rules: Tuple[PatternSpec, ...] = SPECIFIC_RULES,
    ):
        self.payer_rules = payer_rules
        self.random_rules = random_rules
        self.specific_rules = specific_rules

    def parse(
        self,
        body: Optional[str],
        author: Optional[str],
        comment_id: str,
        _debug: Optional[Dict[str, Any]] = None,
    ) -> ParsedComment:
        """
        Parse one comment.

        Args:
            body: Comment text (None is treated as empty)
            author: Comment author as Reddit reports it
            comment_id: Opaque id, passed through unchanged
            _debug: Optional dict that receives per-pass diagnostics

        Returns:
            Immutable ParsedComment; never raises for string input
        """
        raw = body or ''
        author_key = normalize_name(author)

        payer, is_tab, tab_unresolved = self.detect_payer(raw, author_key, _debug=_debug)

        random_spots, working = self.extract_random_spots(raw, _debug=_debug)
        specific_spots, working = self.extract_specific_spots(working, _debug=_debug)

        beneficiary = self.resolve_beneficiary(raw, author_key, _debug=_debug)

        spots = len(specific_spots) + random_spots
        needs_review = self._requires_review(raw, spots, tab_unresolved)

        logger.debug("Parsed comment", extra={
            "comment_id": comment_id,
            "spots": spots,
            "needs_review": needs_review,
        })

        return ParsedComment(
            comment_id=comment_id,
            author=author_key,
            raw=raw,
            specific_spots=tuple(specific_spots),
            random_spots=random_spots,
            spots=spots,
            beneficiary=beneficiary,
            payer=payer,
            is_tab=is_tab,
            needs_review=needs_review,
        )

    def parse_many(self, comments: Iterable[Dict[str, Any]]) -> List[ParsedComment]:
        """Parse dicts shaped like Reddit comments (body, author, comment_id)."""
        return [
            self.parse(c.get('body'), c.get('author'), c.get('comment_id', ''))
            for c in comments
        ]

    def detect_payer(
        self,
        text: str,
        author_key: str,
        _debug: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, bool, bool]:
        """
        Resolve who pays and whether the claim is tabbed.

        First rule whose captured name survives normalization wins; a rule
        that matches a stop word ("tab by me") falls through to the next.

        Returns:
            (payer, is_tab, tab_unresolved). tab_unresolved is True when a
            tab keyword is present but no payer name could be resolved.
        """
        payer = author_key
        is_tab = False

        for rule in self.payer_rules:
            match = rule.search(text)
            if not match:
                continue
            candidate = resolve_candidate(match.group(1))
            if candidate is None:
                continue
            payer = candidate
            is_tab = bool(TAB_KEYWORDS.search(text))
            _record(_debug, rule, 1)
            break

        tab_unresolved = False
        if not is_tab and BARE_TAB_KEYWORDS.search(text):
            is_tab = True
            tab_unresolved = True
            if _debug is not None:
                _debug.setdefault('warnings', []).append('tab_payer_unresolved')

        return payer, is_tab, tab_unresolved

    def extract_random_spots(
        self,
        text: str,
        _debug: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, str]:
        """
        Count unspecified spots and strip their phrases.

        Each rule erases its own matches before the next one runs.

        Returns:
            (random_spots, remaining_text)
        """
        total = 0
        working = text

        for rule in self.random_rules:
            matches, working = rule.consume(working)
            for match in matches:
                total += self._phrase_count(rule, match.group(1) if match.groups() else None)
            _record(_debug, rule, len(matches))
            self._stage(_debug, rule.name, working)

        return total, working

    def extract_specific_spots(
        self,
        text: str,
        _debug: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[int], str]:
        """
        Read explicit spot numbers from text already stripped of random phrases.

        Returns:
            (sorted unique spots, remaining_text)
        """
        range_spots, working = self._extract_ranges(text, _debug=_debug)
        found: List[int] = []

        for rule in self.specific_rules:
            matches, working = rule.consume(working)
            for match in matches:
                found.extend(self._specific_values(rule, match))
            _record(_debug, rule, len(matches))
            self._stage(_debug, rule.name, working)

        found.extend(range_spots)
        return sorted(set(found)), working

    def resolve_beneficiary(
        self,
        text: str,
        author_key: str,
        _debug: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Conservative: only the first "for X"/"to X" is considered."""
        match = BENEFICIARY_RULE.search(text)
        if match:
            candidate = resolve_candidate(match.group(1))
            if candidate is not None:
                _record(_debug, BENEFICIARY_RULE, 1)
                return candidate
        return author_key

    def _extract_ranges(
        self,
        text: str,
        _debug: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Set[int], str]:
        spots: Set[int] = set()
        matches, working = RANGE_RULE.consume(text)
        for match in matches:
            start, end = _to_int(match.group(1)), _to_int(match.group(2))
            if start is None or end is None or start > end:
                continue
            if end - start + 1 > MAX_RANGE_WIDTH:
                if _debug is not None:
                    _debug.setdefault('warnings', []).append('range_too_wide')
                continue
            spots.update(range(start, end + 1))
        _record(_debug, RANGE_RULE, len(matches))
        self._stage(_debug, RANGE_RULE.name, working)
        return spots, working

    def _phrase_count(self, rule: PatternSpec, token: Optional[str]) -> int:
        if rule.fixed_count is not None:
            return rule.fixed_count
        if token is None:
            return 0
        value = _to_int(token)
        if value is not None:
            return value
        return WORD_NUMBERS.get(token.lower(), 0)

    def _specific_values(self, rule: PatternSpec, match) -> List[int]:
        if rule.kind is RuleKind.LABELED:
            tokens = [match.group(1)]
        elif rule.kind is RuleKind.COMMA_LIST:
            tokens = [part.strip() for part in match.group(1).split(',')]
        else:
            tokens = [match.group(0)]
        return [n for n in (_to_int(t) for t in tokens) if n is not None]

    def _requires_review(self, raw: str, spots: int, tab_unresolved: bool) -> bool:
        """
        Decide if the record needs a human.

        Returns True if ANY of:
        - a tab keyword appeared but the payer could not be resolved
        - nothing was extracted although the text reads like a numeric claim
        """
        if tab_unresolved:
            return True
        return spots == 0 and bool(REVIEW_HINTS.search(raw))

    @staticmethod
    def _stage(_debug: Optional[Dict[str, Any]], name: str, working: str) -> None:
        if _debug is not None:
            _debug.setdefault('stages', []).append((name, working))


_default_parser = CommentParser()


def parse_comment(body: Optional[str], author: Optional[str], comment_id: str) -> ParsedComment:
    """Parse one comment with the default rule tables."""
    return _default_parser.parse(body, author, comment_id)
