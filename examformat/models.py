from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


OPTION_LABELS = ("A", "B", "C", "D", "E")


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    ESSAY = "ESSAY"


class Difficulty(str, Enum):
    EASY = "Mudah"
    MEDIUM = "Sedang"
    HARD = "Sukar"

    @classmethod
    def parse(cls, value: object) -> Optional["Difficulty"]:
        text = str(value or "").strip().lower()
        if not text:
            return None
        for member in cls:
            if text in (member.value.lower(), member.name.lower()):
                return member
        return None


class ExtractionSource(str, Enum):
    REMOTE = "ai"
    LOCAL = "local"


@dataclass(frozen=True)
class Option:
    label: str
    text: str


@dataclass(frozen=True)
class Question:
    id: int
    text: str
    options: tuple[Option, ...] = ()
    type: QuestionType = QuestionType.ESSAY
    answer_key: Optional[str] = None
    difficulty: Optional[Difficulty] = None

    @property
    def is_multiple_choice(self) -> bool:
        return self.type is QuestionType.MULTIPLE_CHOICE

    def with_id(self, new_id: int) -> "Question":
        return replace(self, id=new_id)


def question_type_for(options: tuple[Option, ...] | list[Option]) -> QuestionType:
    return QuestionType.MULTIPLE_CHOICE if options else QuestionType.ESSAY


@dataclass
class ExamHeaderInfo:
    school_name: str = (
        "PEMERINTAH KABUPATEN LUMAJANG\n"
        "DINAS PENDIDIKAN DAN KEBUDAYAAN\n"
        "SMP NEGERI 1 CONTOH"
    )
    subject: str = "Bahasa Indonesia"
    grade: str = "IX (Sembilan) / Ganjil"
    time_allocated: str = "90 Menit"
    academic_year: str = "2023/2024"
    exam_type: str = "PENILAIAN AKHIR SEMESTER"

    @classmethod
    def from_dict(cls, values: dict) -> "ExamHeaderInfo":
        header = cls()
        for key, value in (values or {}).items():
            if hasattr(header, key) and isinstance(value, str):
                setattr(header, key, value)
        return header


@dataclass
class ExamData:
    header: ExamHeaderInfo = field(default_factory=ExamHeaderInfo)
    questions: list[Question] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionResult:
    questions: tuple[Question, ...]
    source: ExtractionSource

    @property
    def multiple_choice(self) -> list[Question]:
        return [q for q in self.questions if q.type is QuestionType.MULTIPLE_CHOICE]

    @property
    def essays(self) -> list[Question]:
        return [q for q in self.questions if q.type is QuestionType.ESSAY]

    def to_payload(self) -> dict:
        return {
            "source": self.source.value,
            "questions": [
                {
                    "id": q.id,
                    "text": q.text,
                    "type": q.type.value,
                    "options": [{"label": o.label, "text": o.text} for o in q.options],
                    "answerKey": q.answer_key,
                    "difficulty": q.difficulty.value if q.difficulty else None,
                }
                for q in self.questions
            ],
        }
