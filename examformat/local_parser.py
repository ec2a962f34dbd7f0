from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from functools import reduce
from typing import Any, Optional

from .classifier import ClassifiedLine, LineKind, classify_lines
from .inline_options import InlineExtraction, extract_inline_options
from .models import Difficulty, Option, Question, question_type_for


class ParserPhase(str, Enum):
    NO_ACTIVE_QUESTION = "no_active_question"
    BUILDING_QUESTION = "building_question"


@dataclass(frozen=True)
class QuestionDraft:
    id: int
    text: str
    options: tuple[Option, ...] = ()
    difficulty: Optional[Difficulty] = None


@dataclass(frozen=True)
class ParserState:
    phase: ParserPhase = ParserPhase.NO_ACTIVE_QUESTION
    draft: Optional[QuestionDraft] = None
    finished: tuple[Question, ...] = ()
    next_id: int = 1
    difficulty: Optional[Difficulty] = Difficulty.MEDIUM


def _join(left: str, right: str) -> str:
    return " ".join(part for part in (left, right) if part)


def _append_option(options: tuple[Option, ...], label: str, text: str, raw: str) -> tuple[Option, ...]:
    if all(option.label != label for option in options):
        return options + (Option(label=label, text=text),)
    # A repeated label keeps first-seen order; its text rides on the last option.
    last = options[-1]
    return options[:-1] + (replace(last, text=_join(last.text, raw)),)


def _append_extracted(options: tuple[Option, ...], extraction: InlineExtraction) -> tuple[Option, ...]:
    for match in extraction.matches:
        options = _append_option(options, match.label, match.text, match.raw)
    return options


def finalize_draft(draft: QuestionDraft) -> Question:
    text = draft.text
    options = draft.options
    if not options:
        extraction = extract_inline_options(text)
        if extraction.found:
            text = extraction.body_before_first(text)
            options = _append_extracted((), extraction)
    return Question(
        id=draft.id,
        text=text,
        options=options,
        type=question_type_for(options),
        difficulty=draft.difficulty,
    )


def _close(state: ParserState) -> tuple[Question, ...]:
    if state.draft is None:
        return state.finished
    return state.finished + (finalize_draft(state.draft),)


def _start_question(state: ParserState, line: ClassifiedLine) -> ParserState:
    body = line.text
    options: tuple[Option, ...] = ()
    extraction = extract_inline_options(body)
    if extraction.found:
        body = extraction.body_before_first(body)
        options = _append_extracted((), extraction)
    draft = QuestionDraft(id=state.next_id, text=body, options=options, difficulty=state.difficulty)
    return replace(
        state,
        phase=ParserPhase.BUILDING_QUESTION,
        draft=draft,
        finished=_close(state),
        next_id=state.next_id + 1,
    )


def _add_option(state: ParserState, line: ClassifiedLine) -> ParserState:
    draft = state.draft
    options = _append_option(draft.options, line.label or "", line.text, line.raw)
    return replace(state, draft=replace(draft, options=options))


def _continue(state: ParserState, line: ClassifiedLine) -> ParserState:
    draft = state.draft
    extraction = extract_inline_options(line.text)
    if extraction.found:
        return replace(state, draft=replace(draft, options=_append_extracted(draft.options, extraction)))
    if draft.options:
        last = draft.options[-1]
        options = draft.options[:-1] + (replace(last, text=_join(last.text, line.text)),)
        return replace(state, draft=replace(draft, options=options))
    return replace(state, draft=replace(draft, text=_join(draft.text, line.text)))


def step(state: ParserState, line: ClassifiedLine) -> ParserState:
    if line.kind is LineKind.QUESTION_START:
        return _start_question(state, line)
    if state.phase is ParserPhase.NO_ACTIVE_QUESTION:
        # No question context yet: the line has nothing to attach to.
        return state
    if line.kind is LineKind.OPTION_START:
        return _add_option(state, line)
    return _continue(state, line)


def finish(state: ParserState) -> tuple[Question, ...]:
    return _close(state)


def parse_questions_locally(text: str, difficulty: Optional[Difficulty] = Difficulty.MEDIUM) -> list[Question]:
    initial = ParserState(difficulty=difficulty)
    final_state = reduce(step, classify_lines(text), initial)
    return list(finish(final_state))


class LocalParser:
    def __init__(self, config: Optional[dict[str, Any]] = None) -> None:
        parsing = (config or {}).get("parsing", {})
        raw_difficulty = parsing.get("default_difficulty", Difficulty.MEDIUM.value)
        self.default_difficulty: Optional[Difficulty] = Difficulty.parse(raw_difficulty)

    def parse(self, text: str) -> list[Question]:
        return parse_questions_locally(text, difficulty=self.default_difficulty)
