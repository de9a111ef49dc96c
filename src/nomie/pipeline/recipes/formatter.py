import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from .types import Chunk

SUPERSCRIPTS = dict(zip("0123456789+-=()nix", "⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻⁼⁽⁾ⁿⁱˣ"))
SUBSCRIPTS = dict(zip("0123456789+-=()aeoxhklmnpst", "₀₁₂₃₄₅₆₇₈₉₊₋₌₍₎ₐₑₒₓₕₖₗₘₙₚₛₜ"))

SCRIPT_RE = re.compile(r"([\^_])(?:\{([^{}]*)\}|(.))")


class LineKind(Enum):
    HEADING2 = "h2"
    HEADING3 = "h3"
    BOLD = "bold"
    BULLET = "bullet"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class FormattedLine:
    kind: LineKind
    text: str


class TextBlockFormatter:
    @staticmethod
    def format(text: str) -> List[FormattedLine]:
        lines = []
        for raw in text.replace("\r", "").split("\n"):
            line = raw.strip()

            # lone hyphens are bullet formatting leftovers
            if not line or line == "-":
                continue

            if line.startswith("## "):
                lines.append(FormattedLine(LineKind.HEADING2, line[3:]))
            elif line.startswith("### "):
                lines.append(FormattedLine(LineKind.HEADING3, line[4:]))
            elif line.startswith("**") and line.endswith("**") and len(line) > 4:
                lines.append(FormattedLine(LineKind.BOLD, line[2:-2]))
            elif line.startswith("- "):
                lines.append(FormattedLine(LineKind.BULLET, line[2:]))
            elif line.startswith("•"):
                lines.append(FormattedLine(LineKind.BULLET, line[1:].lstrip()))
            else:
                lines.append(FormattedLine(LineKind.PARAGRAPH, raw.rstrip()))
        return lines


def to_unicode_scripts(latex: str) -> str:
    """Best-effort ^/_ conversion to Unicode super/subscripts.

    Only characters in the lookup tables are converted. A group with any
    unmapped character is left exactly as written.
    """
    def _convert(match: re.Match) -> str:
        table = SUPERSCRIPTS if match.group(1) == "^" else SUBSCRIPTS
        body = match.group(2) if match.group(2) is not None else match.group(3)
        if body and all(ch in table for ch in body):
            return "".join(table[ch] for ch in body)
        return match.group(0)

    return SCRIPT_RE.sub(_convert, latex)


def render_plain(chunks: Sequence[Chunk]) -> str:
    """Plain-text rendering of segmented chunks for terminals."""
    # Inline math is folded back into the surrounding prose, display math
    # gets its own indented line, then the line formatter runs over the result.
    parts: List[str] = []
    for chunk in chunks:
        if not chunk.is_math:
            parts.append(chunk.value)
        elif chunk.display:
            parts.append(f"\n    {to_unicode_scripts(chunk.value.strip())}\n")
        else:
            parts.append(to_unicode_scripts(chunk.value.strip()))

    rendered = []
    for line in TextBlockFormatter.format("".join(parts)):
        if line.kind is LineKind.HEADING2:
            rendered.append(f"{line.text}\n{'=' * len(line.text)}")
        elif line.kind is LineKind.HEADING3:
            rendered.append(f"{line.text}\n{'-' * len(line.text)}")
        elif line.kind is LineKind.BOLD:
            rendered.append(line.text.upper())
        elif line.kind is LineKind.BULLET:
            rendered.append(f"• {line.text}")
        else:
            rendered.append(line.text)
    return "\n".join(rendered)
