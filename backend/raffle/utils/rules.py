"""
Declarative rule tables for comment parsing.

Every lexical pattern the parser knows about lives here as an ordered,
immutable PatternSpec. The parser walks these tables in order; list order
is the tie-break, so do not sort or reorder entries.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

DEFAULT_FLAGS = re.IGNORECASE | re.ASCII

# Reddit username-ish token captured by payer/beneficiary patterns
NAME = r'([a-z0-9_-]+)'


class RuleKind(Enum):
    """How the parser interprets a rule's matches."""
    PAYER = "payer"                    # group 1 is a username candidate
    KEYWORD_PHRASE = "keyword_phrase"  # counts unspecified (random) spots
    RANGE = "range"                    # "A-B" expands to A..B
    LABELED = "labeled"                # "spot #N" is one specific spot
    COMMA_LIST = "comma_list"          # "N1,N2,...": each is a specific spot
    PLAIN_INTEGER = "plain_integer"    # any standalone integer


@dataclass(frozen=True)
class PatternSpec:
    """A named regex rule with example and notes for documentation."""
    name: str
    kind: RuleKind
    pattern: str
    example: str
    notes: Optional[str] = None
    # Fixed spot count per match (implicit singletons); None reads group 1
    fixed_count: Optional[int] = None
    # What to erase from the working text after extraction; defaults to pattern
    erase: Optional[str] = None
    flags: int = DEFAULT_FLAGS
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)
    erase_compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'compiled', re.compile(self.pattern, self.flags))
        object.__setattr__(
            self, 'erase_compiled', re.compile(self.erase or self.pattern, self.flags)
        )

    def search(self, text: str) -> Optional[re.Match]:
        """First match only (used by first-match-wins tables)."""
        return self.compiled.search(text)

    def consume(self, text: str) -> Tuple[List[re.Match], str]:
        """
        Collect every match, then erase the rule's spans from the text.

        Returns:
            (matches, remaining_text). Erased spans become a single space so
            neighbouring tokens never fuse into a new number or word.
        """
        matches = list(self.compiled.finditer(text))
        return matches, self.erase_compiled.sub(' ', text)


WORD_NUMBERS = {
    'one': 1,
    'two': 2,
    'three': 3,
    'four': 4,
    'five': 5,
    'six': 6,
    'seven': 7,
    'eight': 8,
    'nine': 9,
    'ten': 10,
    'eleven': 11,
    'twelve': 12,
    'thirteen': 13,
    'fourteen': 14,
    'fifteen': 15,
    'sixteen': 16,
    'seventeen': 17,
    'eighteen': 18,
    'nineteen': 19,
    'twenty': 20,
    'thirty': 30,

    # informal quantifiers
    'a': 1,
    'an': 1,
    'single': 1,
    'couple': 2,
    'pair': 2,
    'few': 3,
}

_WORD_ALTERNATION = '|'.join(WORD_NUMBERS)
_QUALIFIER = r'(?:more\s+|additional\s+)?'
_RANDOM_SUFFIX = r'(?:randoms|rands|random|rand)\b'


PAYER_RULES = (
    PatternSpec(
        name='tabbed_by',
        kind=RuleKind.PAYER,
        pattern=r'tab+b?e?d?\s+by\s+' + NAME,
        example='tabbed by fuzzy',
    ),
    PatternSpec(
        name='tabbed_to',
        kind=RuleKind.PAYER,
        pattern=r'tab+b?e?d?\s+to\s+' + NAME,
        example='tabbed to fuzzy',
    ),
    PatternSpec(
        name='tabbed_for',
        kind=RuleKind.PAYER,
        pattern=r'tab+b?e?d?\s+for\s+' + NAME,
        example='tab for fuzzy',
    ),
    PatternSpec(
        name='tabbed_name',
        kind=RuleKind.PAYER,
        pattern=r'tab+b?e?d?\s+' + NAME,
        example='tabbed fuzzy',
        notes='Also hits "tab by me"; the stop-word check sends those onward',
    ),
    PatternSpec(
        name='tab_to',
        kind=RuleKind.PAYER,
        pattern=r'\btab\s+to\s+' + NAME,
        example='tab to fuzzy',
    ),
    PatternSpec(
        name='tab_name',
        kind=RuleKind.PAYER,
        pattern=r'\btab\s+' + NAME,
        example='tab fuzzy',
    ),
    PatternSpec(
        name='wff_to',
        kind=RuleKind.PAYER,
        pattern=r'wff\s+to\s+' + NAME,
        example='wff to fuzzy',
    ),
    PatternSpec(
        name='wff_name',
        kind=RuleKind.PAYER,
        pattern=r'wff\s+' + NAME,
        example='wff fuzzy',
    ),
    PatternSpec(
        name='paid_by',
        kind=RuleKind.PAYER,
        pattern=r'paid\s+by\s+' + NAME,
        example='paid by fuzzy',
    ),
    PatternSpec(
        name='on_name_tab',
        kind=RuleKind.PAYER,
        pattern=r"on\s+" + NAME + r"'?s?\s+tab",
        example="on fuzzy's tab",
    ),
    PatternSpec(
        name='name_will_pay',
        kind=RuleKind.PAYER,
        pattern=NAME + r'\s+(?:will\s+)?pay\b',
        example='fuzzy will pay',
        notes='Names a payer without implying a tab',
    ),
    PatternSpec(
        name='name_is_paying',
        kind=RuleKind.PAYER,
        pattern=NAME + r'\s+is\s+paying\b',
        example='fuzzy is paying',
    ),
)

# Whole-word keywords that make a resolved payer a tab
TAB_KEYWORDS = re.compile(r'\b(?:tab|tabbed|wff|paid by)\b', DEFAULT_FLAGS)

# Keywords that mark a tab even when no payer could be resolved
BARE_TAB_KEYWORDS = re.compile(r'\b(?:tab|tabbed|wff)\b', DEFAULT_FLAGS)


RANDOM_RULES = (
    PatternSpec(
        name='n_spots',
        kind=RuleKind.KEYWORD_PHRASE,
        pattern=r'\b(\d+)\s*spots?\b',
        example='30 spots',
        notes='Host convention: "N spots" is always N random spots',
    ),
    PatternSpec(
        name='n_randoms',
        kind=RuleKind.KEYWORD_PHRASE,
        pattern=r'(\d+)\s*' + _QUALIFIER + _RANDOM_SUFFIX,
        example='2 more randoms',
    ),
    PatternSpec(
        name='word_randoms',
        kind=RuleKind.KEYWORD_PHRASE,
        pattern=r'\b(' + _WORD_ALTERNATION + r')\s*' + _QUALIFIER + _RANDOM_SUFFIX,
        example='a couple randoms',
    ),
    PatternSpec(
        name='implicit_single_random',
        kind=RuleKind.KEYWORD_PHRASE,
        pattern=r'\b(?:another|extra)\s+(?:random|rand)\b',
        example='another random',
        fixed_count=1,
    ),
)


# Widest range a single "A-B" may expand to; wider ones are treated like inverted ranges
MAX_RANGE_WIDTH = 1000

RANGE_RULE = PatternSpec(
    name='range',
    kind=RuleKind.RANGE,
    pattern=r'(\d+)\s*-\s*(\d+)',
    example='4-10',
    notes='Inverted or over-wide ranges are erased but contribute nothing',
)

SPECIFIC_RULES = (
    PatternSpec(
        name='labeled_spot',
        kind=RuleKind.LABELED,
        pattern=r'\bspot\s*#?(\d+)\b',
        example='spot #7',
    ),
    PatternSpec(
        name='comma_list',
        kind=RuleKind.COMMA_LIST,
        pattern=r'\b(\d+\s*,\s*\d+(?:\s*,\s*\d+)*)\b',
        example='40,161,162',
        notes='Only commas are erased; the numbers are re-read as bare integers',
        erase=r',',
    ),
    PatternSpec(
        name='bare_integer',
        kind=RuleKind.PLAIN_INTEGER,
        pattern=r'(?<!#)\b\d+\b',
        example='1 10 19 24',
        notes='An isolated "#N" is a review hint; "#" before a range or list is read as a label',
    ),
)


BENEFICIARY_RULE = PatternSpec(
    name='for_or_to_name',
    kind=RuleKind.PAYER,
    pattern=r'\b(?:for|to)\s+' + NAME + r'\b',
    example='for fuzzy',
)

# Text that looks like a numeric claim; zero spots alongside it needs a human
REVIEW_HINTS = re.compile(r'\b(?:random|rand|spot|spots)\b|#|\d', DEFAULT_FLAGS)
