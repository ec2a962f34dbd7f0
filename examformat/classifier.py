from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional


class LineKind(str, Enum):
    QUESTION_START = "question_start"
    OPTION_START = "option_start"
    CONTINUATION = "continuation"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str
    number: Optional[int] = None
    label: Optional[str] = None
    raw: str = ""


@dataclass(frozen=True)
class PrefixRule:
    """A line-prefix matcher that yields one classification variant."""

    kind: LineKind
    pattern: re.Pattern[str]

    def match(self, line: str) -> Optional[ClassifiedLine]:
        found = self.pattern.match(line)
        if not found:
            return None
        marker, body = found.group(1), found.group(2).strip()
        if not body:
            return None
        if self.kind is LineKind.QUESTION_START:
            return ClassifiedLine(kind=self.kind, text=body, number=int(marker), raw=line)
        return ClassifiedLine(kind=self.kind, text=body, label=marker.upper(), raw=line)


SEPARATOR_RUN = r"[\.\)\-\s]+"

QUESTION_START_RULE = PrefixRule(
    kind=LineKind.QUESTION_START,
    pattern=re.compile(rf"^(\d+){SEPARATOR_RUN}(.+)$"),
)
OPTION_START_RULE = PrefixRule(
    kind=LineKind.OPTION_START,
    pattern=re.compile(rf"^([A-Ea-e]){SEPARATOR_RUN}(.+)$"),
)

DEFAULT_RULES: tuple[PrefixRule, ...] = (QUESTION_START_RULE, OPTION_START_RULE)


def classify_line(line: str, rules: Iterable[PrefixRule] = DEFAULT_RULES) -> ClassifiedLine:
    stripped = (line or "").strip()
    for rule in rules:
        classified = rule.match(stripped)
        if classified is not None:
            return classified
    return ClassifiedLine(kind=LineKind.CONTINUATION, text=stripped, raw=stripped)


def split_lines(text: str) -> list[str]:
    lines: list[str] = []
    for raw in re.split(r"\r?\n", text or ""):
        stripped = raw.strip()
        if stripped:
            lines.append(stripped)
    return lines


def classify_lines(text: str, rules: Iterable[PrefixRule] = DEFAULT_RULES) -> Iterator[ClassifiedLine]:
    rule_list = tuple(rules)
    for line in split_lines(text):
        yield classify_line(line, rule_list)
