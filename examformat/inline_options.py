from __future__ import annotations

import re
from dataclasses import dataclass

# boundary + label + separator + whitespace, content runs lazily up to the next marker
_INLINE_OPTION_RE = re.compile(
    r"(?:^|\s)([A-Ea-e])[\.\)\-]\s+(.*?)(?=\s+[A-Ea-e][\.\)\-]\s+|$)",
    re.DOTALL,
)


@dataclass(frozen=True)
class InlineOptionMatch:
    label: str
    text: str
    start: int
    end: int
    raw: str = ""


@dataclass(frozen=True)
class InlineExtraction:
    matches: tuple[InlineOptionMatch, ...]

    @property
    def found(self) -> bool:
        return bool(self.matches)

    @property
    def pairs(self) -> list[tuple[str, str]]:
        return [(match.label, match.text) for match in self.matches]

    def body_before_first(self, blob: str) -> str:
        if not self.matches:
            return (blob or "").strip()
        return blob[: self.matches[0].start].strip()


def extract_inline_options(blob: str) -> InlineExtraction:
    """Find option markers packed into one blob of text.

    The returned spans index into ``blob``; ``start`` points at the boundary
    before the label so ``blob[:start]`` is the text preceding the first marker.
    """
    text = blob or ""
    matches = [
        InlineOptionMatch(
            label=found.group(1).upper(),
            text=found.group(2).strip(),
            start=found.start(),
            end=found.end(),
            raw=found.group(0).strip(),
        )
        for found in _INLINE_OPTION_RE.finditer(text)
    ]
    return InlineExtraction(matches=tuple(matches))
