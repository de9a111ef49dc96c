from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .types import Chunk


@dataclass(frozen=True)
class SpanMatcher:
    name: str
    open: str
    body: str
    close: str
    display: bool
    keep_delimiters: bool = False  # value is the whole span, not just the body


# Priority order: at the same offset the earlier matcher wins, not the longest.
DEFAULT_SPAN_MATCHERS: Tuple[SpanMatcher, ...] = (
    SpanMatcher("display_bracket", r"\\\[", r"[\s\S]*?", r"\\\]", display=True),
    SpanMatcher("double_dollar", r"\$\$", r"[\s\S]*?", r"\$\$", display=True),
    SpanMatcher("paren", r"\\\(", r"[\s\S]*?", r"\\\)", display=False),
    SpanMatcher("dollar", r"\$", r"[^$]*?", r"\$", display=False),
    SpanMatcher("aligned", r"\\begin\{aligned\}", r"[\s\S]*?", r"\\end\{aligned\}", display=True, keep_delimiters=True),
    SpanMatcher("boxed", r"\\boxed\{", r"[\s\S]*?", r"\}", display=False, keep_delimiters=True),
)


def compile_matchers(matchers: Sequence[SpanMatcher]) -> re.Pattern:
    alternatives = [
        f"(?P<span{i}>{m.open}(?P<body{i}>{m.body}){m.close})"
        for i, m in enumerate(matchers)
    ]
    return re.compile("|".join(alternatives))


class MathTextSegmenter:
    """Splits sanitized text into ordered text and math chunks.

    One leftmost scan over a single alternation built from the matcher
    table. Chunks never overlap and their `source` fields, joined in order,
    give back the input.
    """

    def __init__(self, matchers: Optional[Sequence[SpanMatcher]] = None):
        self.matchers = tuple(matchers or DEFAULT_SPAN_MATCHERS)
        self._pattern = compile_matchers(self.matchers)

    def split(self, text: str) -> List[Chunk]:
        chunks: List[Chunk] = []
        last = 0

        for match in self._pattern.finditer(text):
            start = match.start()
            if start > last:
                chunks.append(Chunk.text(text[last:start]))

            index, matcher = self._which(match)
            span = match.group(f"span{index}")
            value = span if matcher.keep_delimiters else match.group(f"body{index}")
            chunks.append(Chunk.math(value, matcher.display, span))
            last = match.end()

        if last < len(text):
            chunks.append(Chunk.text(text[last:]))
        return chunks

    def _which(self, match: re.Match) -> Tuple[int, SpanMatcher]:
        for i, matcher in enumerate(self.matchers):
            if match.group(f"span{i}") is not None:
                return i, matcher
        raise RuntimeError(f"Unmatched span alternative at offset {match.start()}")


def split_answer(text: str) -> List[Chunk]:
    return MathTextSegmenter().split(text)
