"""
Instruction Parser for Edit Recipes.

Turns free-form editing instructions into an ordered list of recipe
operations. Supported clause forms:
- "remove filler words", "cut the ums and uhs"
- "remove silences longer than 2 seconds", "tighten the cuts"
- "cut 1:30 to 1:45", "remove from 90s to 2 minutes"
- "trim the first 10 seconds", "cut the last 30 seconds"
- "keep only 0:10 to 4:00", "trim to 10 - 240"
- 'remove "as I said before"', "cut the part where they say 'anyway'"
- "swap parts 2 and 3", "move part 4 to the start", "reverse the order"
- 'add a title "Chapter One" at 0:05'
- "speed up", "make it punchier", "slow down", "1.5x speed"

No AI/LLM required - pure regex-based parsing. The output for a given
input is fixed per COMPILER_REVISION; bump the revision whenever a rule
changes what it produces.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from longform.schemas.recipe import (
    DEFAULT_FILLER_WORDS,
    CutOperation,
    EditOperation,
    OverlayOperation,
    PacingOperation,
    RemoveFillersOperation,
    RemoveSilenceOperation,
    ReorderOperation,
    TrimOperation,
)

logger = logging.getLogger(__name__)

COMPILER_REVISION = "rules-2026.10"

# Default overlay length when only a start time ("at 0:05") is given
DEFAULT_OVERLAY_SECONDS = 5.0

# Speed used by qualitative pacing phrases
KEYWORD_SPEEDS = {
    "punchier": 1.25,
    "snappier": 1.25,
    "faster": 1.25,
    "speed up": 1.25,
    "quicker": 1.25,
    "slower": 0.8,
    "slow down": 0.8,
    "slow it down": 0.8,
}

MIN_SPEED = 0.5
MAX_SPEED = 2.0

_UNIT_SECONDS = {
    "h": 3600.0, "hr": 3600.0, "hrs": 3600.0, "hour": 3600.0, "hours": 3600.0,
    "m": 60.0, "min": 60.0, "mins": 60.0, "minute": 60.0, "minutes": 60.0,
    "s": 1.0, "sec": 1.0, "secs": 1.0, "second": 1.0, "seconds": 1.0,
}

_UNIT_PATTERN = r"hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s"


def _time(name: str) -> str:
    """Named-group pattern for a timestamp such as 90, 90s, 1:30, 1:30.5, 2 minutes."""
    return (
        rf"(?P<{name}>\d+(?::\d{{1,2}}){{0,2}}(?:\.\d+)?)"
        rf"(?:\s*(?P<{name}_unit>{_UNIT_PATTERN})\b)?"
    )


_RANGE_SEPARATOR = r"\s*(?:to|until|through|and|-|–)\s*"
_ORDINAL_PART = r"(?:part|segment|section|clip|chunk)s?"

_CUT_VERB = r"\b(?:cut|remove|delete|drop|skip)\b"

# Quoted phrases become single private-use placeholders before clause splitting
_QUOTED_RE = re.compile(r'"([^"]+)"|“([^”]+)”|(?<!\w)\'([^\']+)\'(?!\w)')
_PLACEHOLDER_BASE = 0xE000
_PLACEHOLDER_RE = re.compile("[\ue000-\uf8ff]")

_CLAUSE_SPLIT_RE = re.compile(
    r"[;\n!?]+"
    r"|\.(?=\s|$)"
    r"|,?\s*\band then\b"
    r"|,?\s*\bthen\b"
    r"|,\s*and\b"
    r"|(?:,\s*|\band\s+)(?=(?:cut|remove|delete|drop|skip|trim|keep|swap|move|reverse|add|speed|slow|make|tighten)\b)",
    re.IGNORECASE,
)

_OVERLAY_RE = re.compile(
    r"\b(?:add|put|insert|show)\b.*?\b(?P<kind>title|caption|subtitle|lower third|text|overlay|label)\b",
    re.IGNORECASE,
)
_AT_RE = re.compile(rf"\bat\s+{_time('at')}", re.IGNORECASE)
_FROM_TO_RE = re.compile(rf"\b(?:from|between)\s+{_time('a')}{_RANGE_SEPARATOR}{_time('b')}", re.IGNORECASE)

_HEAD_TAIL_RE = re.compile(
    rf"\b(?:trim|cut|remove|delete|drop|skip)\b\s+(?:off\s+)?(?:the\s+)?"
    rf"(?P<edge>first|last|opening|closing|final)\s+{_time('n')}",
    re.IGNORECASE,
)
_KEEP_RE = re.compile(
    rf"\b(?:keep|trim)\b(?:\s+(?:it|only|just|to|from|between|the part from))*\s+"
    rf"{_time('a')}{_RANGE_SEPARATOR}{_time('b')}",
    re.IGNORECASE,
)
_TIME_CUT_RE = re.compile(
    rf"{_CUT_VERB}.*?(?:\bfrom\b|\bbetween\b)?\s*{_time('a')}{_RANGE_SEPARATOR}{_time('b')}",
    re.IGNORECASE,
)
_PHRASE_CUT_RE = re.compile(rf"{_CUT_VERB}", re.IGNORECASE)
_EVERY_RE = re.compile(r"\b(?:every|each|all)\b", re.IGNORECASE)

_SWAP_RE = re.compile(
    rf"\bswap\b.*?(?:{_ORDINAL_PART}\s+)?(?P<a>\d+)\s*(?:and|with|&)\s*(?:{_ORDINAL_PART}\s+)?(?P<b>\d+)",
    re.IGNORECASE,
)
_MOVE_RE = re.compile(
    rf"\bmove\b\s+(?:the\s+)?(?:(?P<last>last|final)\s+{_ORDINAL_PART}|(?P<first>first)\s+{_ORDINAL_PART}"
    rf"|{_ORDINAL_PART}\s+(?P<src>\d+))\s+to\s+(?:the\s+)?"
    r"(?:(?P<start>start|beginning|front|top)|(?P<end>end|back|bottom)|position\s+(?P<dst>\d+))",
    re.IGNORECASE,
)
_REVERSE_RE = re.compile(r"\breverse\b", re.IGNORECASE)

_FILLER_RE = re.compile(r"\bfillers?\b|\bums?\b|\buhs?\b|\bumms?\b|\bhmms?\b", re.IGNORECASE)
_SILENCE_RE = re.compile(r"\bsilen(?:ce|ces|t)\b|\bpauses?\b|\bdead air\b|\bgaps?\b|\btighten\b", re.IGNORECASE)
_LONGER_THAN_RE = re.compile(rf"\b(?:longer|more)\s+than\s+{_time('gap')}", re.IGNORECASE)

_SPEED_X_RE = re.compile(r"(?P<speed>\d+(?:\.\d+)?)\s*x\b", re.IGNORECASE)
_SPEED_PCT_RE = re.compile(
    r"\b(?P<dir>speed\s+(?:it\s+)?up|slow\s+(?:it\s+)?down)\s+by\s+(?P<pct>\d+(?:\.\d+)?)\s*%",
    re.IGNORECASE,
)
_SPEED_CONTEXT_RE = re.compile(r"\bspeed\b|\bplay(?:back)?\b|\bpace\b|\bfaster\b|\bslower\b", re.IGNORECASE)


@dataclass
class ParseResult:
    """Operations recognised in an instruction text, plus dropped fragments."""

    operations: List[EditOperation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class _Context:
    phrases: List[str]
    transcript_tokens: List[Tuple[int, str]]
    duration: Optional[float]
    warnings: List[str]

    def drop(self, clause: str, reason: str) -> List[EditOperation]:
        """Record a dropped clause and return no operations for it."""
        readable = _restore_phrases(clause, self.phrases)
        logger.debug(f"Dropping clause '{readable}': {reason}")
        self.warnings.append(f"Dropped '{readable}': {reason}")
        return []


def parse_instructions(
    instructions: str,
    transcript_text: str = "",
    duration_seconds: Optional[float] = None,
    transcript_words: Optional[Sequence[str]] = None,
) -> ParseResult:
    """
    Parse natural-language edit instructions into recipe operations.

    Clauses are parsed independently and their operations appended in the
    order they appear. A clause that no rule recognises, or whose target
    cannot be resolved (a time past the end of the transcript, a quoted
    phrase that is not in the transcript), contributes no operation and
    adds a warning instead.

    Args:
        instructions: Free-form instruction text
        transcript_text: Transcript text the instructions refer to; quoted
            phrases are located in it to produce word-index ranges
        duration_seconds: Transcript duration used to validate and resolve
            time ranges; unchecked when None
        transcript_words: Stored word texts of the target transcript. When
            given, quoted phrases are located in these words instead of
            transcript_text, so word indices match the transcript timings

    Returns:
        ParseResult with operations and warnings
    """
    result = ParseResult()
    if not instructions or not instructions.strip():
        return result

    phrases: List[str] = []

    def _stash(match: re.Match) -> str:
        phrases.append(next(g for g in match.groups() if g is not None))
        return chr(_PLACEHOLDER_BASE + len(phrases) - 1)

    protected = _QUOTED_RE.sub(_stash, instructions)
    ctx = _Context(
        phrases=phrases,
        transcript_tokens=(
            tokenize_words(transcript_words)
            if transcript_words is not None
            else tokenize_transcript(transcript_text or "")
        ),
        duration=duration_seconds,
        warnings=result.warnings,
    )

    for clause in split_clauses(protected):
        operations = _parse_clause(clause, ctx)
        if operations is None:
            readable = _restore_phrases(clause, phrases)
            logger.debug(f"No rule matched clause '{readable}'")
            result.warnings.append(f"Unrecognised instruction: '{readable}'")
            continue
        result.operations.extend(operations)

    logger.debug(
        f"Parsed {len(result.operations)} operations "
        f"({len(result.warnings)} warnings) from instructions"
    )
    return result


def split_clauses(text: str) -> List[str]:
    """Split instruction text into trimmed, non-empty clauses."""
    parts = _CLAUSE_SPLIT_RE.split(text)
    clauses = []
    for part in parts:
        cleaned = part.strip(" ,.:").strip()
        if cleaned:
            clauses.append(cleaned)
    return clauses


def parse_timestamp(value: str, unit: Optional[str] = None) -> float:
    """
    Convert a timestamp to seconds.

    "90" -> 90.0, "1:30" -> 90.0, "1:02:03" -> 3723.0, ("2", "minutes") -> 120.0
    """
    parts = value.split(":")
    seconds = 0.0
    for part in parts:
        seconds = seconds * 60 + float(part)
    if unit and len(parts) == 1:
        seconds *= _UNIT_SECONDS[unit.lower()]
    return seconds


def normalize_token(token: str) -> str:
    """Lowercase a word and strip everything but letters and digits."""
    return re.sub(r"[^\w]|_", "", token.lower())


def tokenize_transcript(text: str) -> List[Tuple[int, str]]:
    """Tokenize transcript text by whitespace; see tokenize_words."""
    return tokenize_words(text.split())


def tokenize_words(words: Sequence[str]) -> List[Tuple[int, str]]:
    """
    Normalize a sequence of words, one index per word.

    Returns (word_index, normalized_token) pairs; words that normalize to
    nothing (stray punctuation) keep their index slot but are not returned.
    """
    tokens = []
    for index, raw in enumerate(words):
        normalized = normalize_token(raw)
        if normalized:
            tokens.append((index, normalized))
    return tokens


def find_phrase(
    tokens: List[Tuple[int, str]],
    phrase: str,
    all_occurrences: bool = False,
) -> List[Tuple[int, int]]:
    """
    Locate a phrase in tokenized transcript text.

    Matching ignores case and punctuation. Occurrences do not overlap.

    Returns:
        Inclusive (start_word, end_word) pairs; the first occurrence only
        unless all_occurrences is set
    """
    needle = [normalize_token(t) for t in phrase.split()]
    needle = [t for t in needle if t]
    if not needle:
        return []

    matches = []
    values = [token for _, token in tokens]
    i = 0
    while i <= len(values) - len(needle):
        if values[i:i + len(needle)] == needle:
            matches.append((tokens[i][0], tokens[i + len(needle) - 1][0]))
            if not all_occurrences:
                break
            i += len(needle)
        else:
            i += 1
    return matches


# =============================================================================
# Clause rules
# =============================================================================


def _parse_clause(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    """
    Apply the rules to one clause in priority order.

    Returns the operations of the first rule that recognises the clause
    (possibly empty when its target was dropped), or None when no rule
    applies.
    """
    rules: List[Callable[[str, _Context], Optional[List[EditOperation]]]] = [
        _rule_overlay,
        _rule_head_tail,
        _rule_keep_range,
        _rule_time_cut,
        _rule_phrase_cut,
        _rule_reorder,
        _rule_cleanup,
        _rule_pacing,
    ]
    for rule in rules:
        try:
            operations = rule(clause, ctx)
        except ValidationError as e:
            return ctx.drop(clause, e.errors()[0]["msg"])
        if operations is not None:
            return operations
    return None


def _group_time(match: re.Match, name: str, default_unit: Optional[str] = None) -> float:
    return parse_timestamp(match.group(name), match.group(f"{name}_unit") or default_unit)


def _range_times(match: re.Match) -> Tuple[float, float]:
    """Read an a/b range; a bare start borrows the end's unit ("1 to 2 minutes")."""
    end_unit = match.group("b_unit")
    return _group_time(match, "a", end_unit), _group_time(match, "b")


def _check_range(start: float, end: float, clause: str, ctx: _Context) -> Optional[Tuple[float, float]]:
    """
    Validate a time range against the transcript.

    A range starting past the end of the transcript is dropped; one that
    only runs past the end is clamped to the duration.
    """
    if ctx.duration is not None:
        if start >= ctx.duration:
            ctx.drop(clause, f"{start:g}s is past the end of the transcript ({ctx.duration:g}s)")
            return None
        end = min(end, ctx.duration)
    if end <= start:
        ctx.drop(clause, "range end is not after its start")
        return None
    return round(start, 3), round(end, 3)


def _rule_overlay(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    match = _OVERLAY_RE.search(clause)
    if not match:
        return None
    placeholder = _PLACEHOLDER_RE.search(clause)
    if not placeholder:
        return ctx.drop(clause, "overlay text must be quoted")
    text = ctx.phrases[ord(placeholder.group()) - _PLACEHOLDER_BASE]

    kind = match.group("kind").lower()
    if re.search(r"\btop\b", clause, re.IGNORECASE):
        position = "top"
    elif kind == "title":
        position = "center"
    else:
        position = "bottom"

    span = _FROM_TO_RE.search(clause)
    if span:
        start, end = _range_times(span)
    else:
        at = _AT_RE.search(clause)
        start = _group_time(at, "at") if at else 0.0
        end = start + DEFAULT_OVERLAY_SECONDS

    checked = _check_range(start, end, clause, ctx)
    if checked is None:
        return []
    return [OverlayOperation(start=checked[0], end=checked[1], text=text, position=position)]


def _rule_head_tail(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    match = _HEAD_TAIL_RE.search(clause)
    if not match:
        return None
    amount = _group_time(match, "n")
    edge = match.group("edge").lower()

    if ctx.duration is not None and amount >= ctx.duration:
        return ctx.drop(clause, "it would remove the whole transcript")

    if edge in ("first", "opening"):
        checked = _check_range(0.0, amount, clause, ctx)
    elif ctx.duration is None:
        return ctx.drop(clause, "transcript duration is unknown")
    else:
        checked = _check_range(ctx.duration - amount, ctx.duration, clause, ctx)

    if checked is None:
        return []
    return [CutOperation(start=checked[0], end=checked[1])]


def _rule_keep_range(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    match = _KEEP_RE.search(clause)
    if not match:
        return None
    checked = _check_range(*_range_times(match), clause, ctx)
    if checked is None:
        return []
    return [TrimOperation(start=checked[0], end=checked[1])]


def _rule_time_cut(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    match = _TIME_CUT_RE.search(clause)
    if not match:
        return None
    checked = _check_range(*_range_times(match), clause, ctx)
    if checked is None:
        return []
    return [CutOperation(start=checked[0], end=checked[1])]


def _rule_phrase_cut(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    if not _PHRASE_CUT_RE.search(clause):
        return None
    placeholders = _PLACEHOLDER_RE.findall(clause)
    if not placeholders:
        return None

    every = bool(_EVERY_RE.search(clause))
    operations: List[EditOperation] = []
    for ref in placeholders:
        phrase = ctx.phrases[ord(ref) - _PLACEHOLDER_BASE]
        ranges = find_phrase(ctx.transcript_tokens, phrase, all_occurrences=every)
        if not ranges:
            ctx.drop(clause, f"phrase '{phrase}' not found in transcript")
            continue
        for start_word, end_word in ranges:
            operations.append(CutOperation(start_word=start_word, end_word=end_word))
    return operations


def _rule_reorder(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    swap = _SWAP_RE.search(clause)
    if swap:
        a, b = int(swap.group("a")), int(swap.group("b"))
        if a < 1 or b < 1 or a == b:
            return ctx.drop(clause, "parts are numbered from 1 and must differ")
        return [ReorderOperation(swap=[a - 1, b - 1])]

    move = _MOVE_RE.search(clause)
    if move:
        if move.group("last"):
            source = -1
        elif move.group("first"):
            source = 0
        else:
            source = int(move.group("src")) - 1

        if move.group("start"):
            target = 0
        elif move.group("end"):
            target = -1
        else:
            target = int(move.group("dst")) - 1

        if source < -1 or target < -1:
            return ctx.drop(clause, "parts are numbered from 1")
        return [ReorderOperation(move_from=source, move_to=target)]

    if _REVERSE_RE.search(clause):
        return [ReorderOperation(reverse=True)]
    return None


def _rule_cleanup(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    operations: List[EditOperation] = []
    if _FILLER_RE.search(clause):
        operations.append(RemoveFillersOperation(words=list(DEFAULT_FILLER_WORDS)))
    if _SILENCE_RE.search(clause):
        longer = _LONGER_THAN_RE.search(clause)
        if longer:
            operations.append(RemoveSilenceOperation(min_gap_seconds=_group_time(longer, "gap")))
        else:
            operations.append(RemoveSilenceOperation())
    return operations or None


def _rule_pacing(clause: str, ctx: _Context) -> Optional[List[EditOperation]]:
    speed = _extract_speed(clause)
    if speed is None:
        return None
    if not MIN_SPEED <= speed <= MAX_SPEED:
        return ctx.drop(clause, f"speed {speed:g}x is outside {MIN_SPEED:g}x-{MAX_SPEED:g}x")
    return [PacingOperation(speed=round(speed, 3))]


def _extract_speed(clause: str) -> Optional[float]:
    """
    Extract a playback speed from a clause.

    Priority order:
    1. Percentage ("speed up by 20%", "slow down by 10%")
    2. Multiplier next to a speed word ("1.5x speed", "play at 0.75x")
    3. Keyword mapping ("punchier" -> 1.25, "slow down" -> 0.8)
    """
    pct = _SPEED_PCT_RE.search(clause)
    if pct:
        delta = float(pct.group("pct")) / 100
        return 1 + delta if pct.group("dir").lower().startswith("speed") else 1 - delta

    multiplier = _SPEED_X_RE.search(clause)
    if multiplier and _SPEED_CONTEXT_RE.search(clause):
        return float(multiplier.group("speed"))

    lowered = clause.lower()
    for keyword, speed in KEYWORD_SPEEDS.items():
        if re.search(rf"\b{keyword}\b", lowered):
            return speed
    return None


def _restore_phrases(clause: str, phrases: List[str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda m: f'"{phrases[ord(m.group()) - _PLACEHOLDER_BASE]}"', clause)
