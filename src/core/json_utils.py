"""
JSON recovery helpers.

Models asked for a JSON array routinely wrap it in prose or code fences, or
emit escape sequences that strict JSON rejects (``\\u{1F600}``, ``\\u12``,
``C:\\Users``). These helpers recover a usable value from such replies and
never raise on malformed input: the worst case is an empty list.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple


logger = logging.getLogger("studyforge.extraction")


# =============================================================================
# REPAIR RULES
# =============================================================================

@dataclass(frozen=True)
class RepairRule:
    """A named, total text transform for one known class of malformed output."""

    name: str
    apply: Callable[[str], str]

    def __call__(self, text: str) -> str:
        return self.apply(text)


# An escaped backslash is always matched first and kept, so `\\u0041`
# (literal backslash, then "u0041") is never read as a unicode escape.
_ESCAPED_BACKSLASH = "\\\\"

_CODE_FENCE_RE = re.compile(r"```[A-Za-z0-9_+\-]*")
_EXTENDED_UNICODE_RE = re.compile(r"\\\\|\\u\{[0-9A-Fa-f]+\}")
_SHORT_UNICODE_RE = re.compile(r"\\\\|\\u(?![0-9A-Fa-f]{4})")
_LONE_SURROGATE_RE = re.compile(
    r"\\\\"
    r"|(?P<pair>\\u[dD][89abAB][0-9A-Fa-f]{2}\\u[dD][c-fC-F][0-9A-Fa-f]{2})"
    r"|\\u[dD][89a-fA-F][0-9A-Fa-f]{2}"
)
_STRAY_BACKSLASH_RE = re.compile(r'\\(?P<escape>["\\/bfnrtu])|\\')
_UNICODE_ESCAPE_RE = re.compile(r"\\\\|\\u[0-9A-Fa-f]{4}")
_DANGLING_COMMA_RE = re.compile(
    r'(?P<string>"(?:[^"\\]|\\.)*")|(?P<lead>\[\s*),|,(?=\s*[,\]}])',
    flags=re.DOTALL,
)


def _keep_escaped_backslash(match: re.Match) -> str:
    token = match.group(0)
    return token if token == _ESCAPED_BACKSLASH else ""


def strip_code_fences(text: str) -> str:
    """Remove ``` markers, with or without a language tag."""
    return _CODE_FENCE_RE.sub("", text)


def strip_extended_unicode_escapes(text: str) -> str:
    r"""Remove non-standard brace escapes such as `\u{1F600}`."""
    return _EXTENDED_UNICODE_RE.sub(_keep_escaped_backslash, text)


def strip_short_unicode_escapes(text: str) -> str:
    r"""Remove a `\u` that is not followed by exactly four hex digits."""
    return _SHORT_UNICODE_RE.sub(_keep_escaped_backslash, text)


def strip_lone_surrogate_escapes(text: str) -> str:
    r"""Remove `\uD800`-`\uDFFF` escapes that are not part of a surrogate pair."""

    def _replace(match: re.Match) -> str:
        if match.group("pair"):
            return match.group("pair")
        return _keep_escaped_backslash(match)

    return _LONE_SURROGATE_RE.sub(_replace, text)


def escape_stray_backslashes(text: str) -> str:
    """Double every backslash that does not start a legal JSON escape."""
    return _STRAY_BACKSLASH_RE.sub(
        lambda m: m.group(0) if m.group("escape") else _ESCAPED_BACKSLASH,
        text,
    )


def drop_dangling_commas(text: str) -> str:
    """Remove commas left without a value, e.g. `[1, , 2]` or `[1, 2,]`.

    String literals are matched first and copied through untouched.
    """

    def _replace(match: re.Match) -> str:
        if match.group("string") is not None:
            return match.group("string")
        if match.group("lead") is not None:
            return match.group("lead")
        return ""

    return _DANGLING_COMMA_RE.sub(_replace, text)


def strip_unicode_escapes(text: str) -> str:
    r"""Remove every well-formed `\uXXXX` escape. Lossy."""
    return _UNICODE_ESCAPE_RE.sub(_keep_escaped_backslash, text)


ESCAPE_RULES: Tuple[RepairRule, ...] = (
    RepairRule("strip_extended_unicode_escapes", strip_extended_unicode_escapes),
    RepairRule("strip_short_unicode_escapes", strip_short_unicode_escapes),
    RepairRule("strip_lone_surrogate_escapes", strip_lone_surrogate_escapes),
    RepairRule("escape_stray_backslashes", escape_stray_backslashes),
)

# Applied to the original candidate in one pass.
REPAIR_RULES: Tuple[RepairRule, ...] = (
    RepairRule("strip_code_fences", strip_code_fences),
    *ESCAPE_RULES,
    RepairRule("drop_dangling_commas", drop_dangling_commas),
)

# Applied on top of the REPAIR_RULES output when that still fails to parse.
LAST_RESORT_RULES: Tuple[RepairRule, ...] = (
    RepairRule("strip_unicode_escapes", strip_unicode_escapes),
    RepairRule("drop_dangling_commas", drop_dangling_commas),
)


def apply_rules(text: str, rules: Sequence[RepairRule]) -> str:
    """Compose ``rules`` left to right over ``text``."""
    for rule in rules:
        text = rule(text)
    return text


# =============================================================================
# CANDIDATE EXTRACTION
# =============================================================================

def extract_candidate(raw: Any) -> Optional[str]:
    """Return the span from the first `[` to the last `]`, inclusive.

    This is the outermost bracketed span, not a balanced scan: two separate
    arrays in one reply yield one candidate covering both, which then fails
    to parse. Returns None when there is no usable bracket pair.
    """
    if not isinstance(raw, str):
        return None

    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end < start:
        return None
    return raw[start : end + 1]


# =============================================================================
# REPAIR-AND-PARSE PIPELINE
# =============================================================================

class ExtractionStatus(Enum):
    """How a structured extraction ended"""
    PARSED = "parsed"
    REPAIRED = "repaired"
    LOSSY = "lossy"
    NO_CANDIDATE = "no_candidate"
    FAILED = "failed"


_SUCCESS_STATUSES = {
    ExtractionStatus.PARSED,
    ExtractionStatus.REPAIRED,
    ExtractionStatus.LOSSY,
}


@dataclass
class ParseAttempt:
    """One parse of the candidate or a repaired variant of it."""
    stage: str
    text: str
    success: bool
    value: Optional[List[Any]] = None
    error: Optional[str] = None


@dataclass
class ExtractionResult:
    """Records recovered from one model reply, plus how they were recovered.

    An empty ``records`` list with ``ok`` True means the model really returned
    an empty array; with ``ok`` False it means nothing could be recovered.
    """
    status: ExtractionStatus
    records: List[Any] = field(default_factory=list)
    attempts: List[ParseAttempt] = field(default_factory=list)
    raw_length: int = 0

    @property
    def ok(self) -> bool:
        return self.status in _SUCCESS_STATUSES

    @property
    def is_lossy(self) -> bool:
        return self.status is ExtractionStatus.LOSSY

    @property
    def stage(self) -> Optional[str]:
        for attempt in self.attempts:
            if attempt.success:
                return attempt.stage
        return None


def _reject_constant(name: str) -> Any:
    # json.loads accepts NaN/Infinity by default; strict JSON does not.
    raise ValueError(f"Non-standard JSON constant: {name}")


def _attempt_parse(stage: str, text: str) -> ParseAttempt:
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        return ParseAttempt(stage=stage, text=text, success=False, error=str(e))

    if not isinstance(value, list):
        return ParseAttempt(
            stage=stage,
            text=text,
            success=False,
            error=f"Expected a JSON array, got {type(value).__name__}",
        )
    return ParseAttempt(stage=stage, text=text, success=True, value=value)


# Each stage derives its text from the previous stage's text.
_STAGES: Tuple[Tuple[str, ExtractionStatus, Tuple[RepairRule, ...]], ...] = (
    ("direct", ExtractionStatus.PARSED, ()),
    ("repair", ExtractionStatus.REPAIRED, REPAIR_RULES),
    ("last_resort", ExtractionStatus.LOSSY, LAST_RESORT_RULES),
)


def resolve_structured_result(raw: Any) -> ExtractionResult:
    """Recover a JSON array from a model reply, recording every attempt.

    Stages, stopping at the first successful parse:

    - direct: the candidate as-is
    - repair: code fences and malformed escapes removed, stray
      backslashes escaped, dangling commas dropped
    - last_resort: additionally every `\\uXXXX` escape stripped (lossy)

    Never raises for malformed input.
    """
    raw_length = len(raw) if isinstance(raw, str) else 0

    candidate = extract_candidate(raw)
    if candidate is None:
        logger.warning(
            "No JSON array candidate found in model output (raw length: %d)",
            raw_length,
        )
        return ExtractionResult(
            status=ExtractionStatus.NO_CANDIDATE, raw_length=raw_length
        )

    attempts: List[ParseAttempt] = []
    text = candidate
    for stage, status, rules in _STAGES:
        text = apply_rules(text, rules)
        attempt = _attempt_parse(stage, text)
        attempts.append(attempt)
        if attempt.success:
            if status is not ExtractionStatus.PARSED:
                logger.info(
                    "Recovered %d record(s) from model output at stage '%s'",
                    len(attempt.value), stage,
                )
            return ExtractionResult(
                status=status,
                records=attempt.value,
                attempts=attempts,
                raw_length=raw_length,
            )
        logger.debug("Parse failed at stage '%s': %s", stage, attempt.error)

    logger.warning(
        "Failed to extract a JSON array from model output after %d attempts "
        "(raw length: %d)",
        len(attempts), raw_length,
    )
    return ExtractionResult(
        status=ExtractionStatus.FAILED, attempts=attempts, raw_length=raw_length
    )


def resolve_structured(raw: Any) -> List[Any]:
    """Recover a JSON array from a model reply; empty list when impossible.

    Use resolve_structured_result() to tell a failed extraction apart from a
    legitimately empty array.
    """
    return resolve_structured_result(raw).records


# =============================================================================
# PLAIN-TEXT SANITIZER
# =============================================================================

def sanitize_text(raw: Any) -> str:
    """Apply the escape repairs once to free-form text.

    Code fences are left alone since prose output may legitimately contain
    them. Returns the input unchanged when nothing needs repair.
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)
    return apply_rules(raw, ESCAPE_RULES)
