"""
Response sanitizer for raw model output.

The model is told never to write meta-commentary, but it sometimes does
anyway. Two line-oriented passes clean the reply before it reaches the user:

1. The meta-line pass walks the lines with a two-state machine
   (before / inside the "Recipe ideas:" section). Before the marker it drops
   lead-in lines that talk about the image or upload, and generic
   "ingredients are:" headers.
2. The compliance pass drops the "Allergy compliance check:" verdict the
   model was required to emit.

A line is only dropped when it matches one of the patterns in the tables
below. Lines are never reordered or edited.
The ALLERGY_CONFLICT sentinel bypasses both passes.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from .types import ALLERGY_CONFLICT

logger = logging.getLogger(__name__)

RECIPE_MARKER_RE = re.compile(r"^recipe ideas:$", re.IGNORECASE)
META_LEAD_IN_RE = re.compile(r"^(however|but|based on|according to|from|in|looking at)\b", re.IGNORECASE)
MODALITY_RE = re.compile(r"(image|photo|picture|upload|provided|attached)", re.IGNORECASE)
INGREDIENTS_HEADER_RE = re.compile(r"^(?:the\s+)?ingredients?\s*(?:are|include)\b.*:?\s*$", re.IGNORECASE)
COMPLIANCE_RE = re.compile(r"^allergy compliance check:", re.IGNORECASE)


class SectionState(Enum):
    BEFORE_RECIPES = "before_recipes"
    IN_RECIPES = "in_recipes"


class LineAction(Enum):
    KEEP = "keep"
    DROP = "drop"
    ENTER_RECIPES = "enter_recipes"


@dataclass(frozen=True)
class LineRule:
    name: str
    states: FrozenSet[SectionState]
    matches: Callable[[str], bool]  # receives the trimmed line
    action: LineAction


def is_recipe_marker(line: str) -> bool:
    return bool(RECIPE_MARKER_RE.match(line))


def is_meta_commentary(line: str) -> bool:
    return bool(META_LEAD_IN_RE.match(line)) and bool(MODALITY_RE.search(line))


def is_ingredients_header(line: str) -> bool:
    return bool(INGREDIENTS_HEADER_RE.match(line))


def is_compliance_line(line: str) -> bool:
    return bool(COMPLIANCE_RE.match(line))


def is_allergy_conflict(text: Optional[str]) -> bool:
    return text is not None and text.strip() == ALLERGY_CONFLICT


_BEFORE = frozenset({SectionState.BEFORE_RECIPES})
_ANY = frozenset(SectionState)

# First matching rule wins; lines matching nothing are kept.
META_RULES: Tuple[LineRule, ...] = (
    LineRule("recipe_marker", _BEFORE, is_recipe_marker, LineAction.ENTER_RECIPES),
    LineRule("meta_commentary", _BEFORE, is_meta_commentary, LineAction.DROP),
    LineRule("ingredients_header", _BEFORE, is_ingredients_header, LineAction.DROP),
)

COMPLIANCE_RULES: Tuple[LineRule, ...] = (
    LineRule("compliance_verdict", _ANY, is_compliance_line, LineAction.DROP),
)


@dataclass
class DroppedLine:
    line_number: int  # 1-based, within the pass input
    rule: str
    text: str


@dataclass
class SanitizeReport:
    text: str
    dropped: List[DroppedLine] = field(default_factory=list)
    allergy_conflict: bool = False


class LineStripper:
    """Single forward scan applying a rule table to each line."""

    def __init__(self, rules: Sequence[LineRule], initial_state: SectionState = SectionState.BEFORE_RECIPES):
        self.rules = tuple(rules)
        self.initial_state = initial_state

    def classify(self, line: str, state: SectionState) -> Tuple[LineAction, Optional[str]]:
        trimmed = line.strip()
        for rule in self.rules:
            if state in rule.states and rule.matches(trimmed):
                return rule.action, rule.name
        return LineAction.KEEP, None

    def strip(self, text: str) -> Tuple[str, List[DroppedLine]]:
        state = self.initial_state
        kept: List[str] = []
        dropped: List[DroppedLine] = []

        for number, line in enumerate(text.split("\n"), start=1):
            action, rule = self.classify(line, state)
            if action is LineAction.DROP:
                dropped.append(DroppedLine(number, rule, line))
                continue
            if action is LineAction.ENTER_RECIPES:
                state = SectionState.IN_RECIPES
            kept.append(line)

        return "\n".join(kept).strip(), dropped


class ResponseSanitizer:
    def __init__(self, strip_compliance: bool = True):
        self.strip_compliance = strip_compliance
        self.meta_stripper = LineStripper(META_RULES)
        self.compliance_stripper = LineStripper(COMPLIANCE_RULES)

    def sanitize(self, raw: str) -> str:
        return self.sanitize_with_report(raw).text

    def sanitize_with_report(self, raw: Optional[str]) -> SanitizeReport:
        raw = raw or ""
        if is_allergy_conflict(raw):
            return SanitizeReport(text=ALLERGY_CONFLICT, allergy_conflict=True)

        text, dropped = self.meta_stripper.strip(raw)
        if self.strip_compliance:
            text, dropped_verdicts = self.compliance_stripper.strip(text)
            dropped.extend(dropped_verdicts)

        for item in dropped:
            logger.debug(f"Sanitizer dropped line {item.line_number} ({item.rule}): {item.text!r}")
        return SanitizeReport(text=text, dropped=dropped)
