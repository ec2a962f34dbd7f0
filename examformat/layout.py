"""
Page layout shared by the HTML preview and the Word exporter.

Both renderers walk the same ``ExamLayout``: section grouping, display
numbering and the fixed texts live here only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .models import ExamData, ExamHeaderInfo, Question, QuestionType

CONFIDENTIAL_NOTICE = "Dokumen Negara - Sangat Rahasia"
INSTRUCTIONS_TITLE = "PETUNJUK UMUM:"
GENERAL_INSTRUCTIONS = (
    "1. Tulislah nama dan nomor peserta pada lembar jawaban yang tersedia.",
    "2. Kerjakan soal yang dianggap mudah terlebih dahulu.",
)
SECTION_HEADINGS = {
    QuestionType.MULTIPLE_CHOICE: "A. Pilihlah salah satu jawaban yang paling tepat!",
    QuestionType.ESSAY: "B. Jawablah pertanyaan-pertanyaan berikut dengan jelas!",
}
SECTION_ORDER = (QuestionType.MULTIPLE_CHOICE, QuestionType.ESSAY)
DATE_PLACEHOLDER = ": ............................"
INFO_COLUMN_WIDTHS_PCT = (20, 40, 15, 25)


@dataclass(frozen=True)
class Typography:
    font_family: str = "Times New Roman"
    body_pt: float = 12
    header_pt: float = 14
    page_header_pt: float = 8
    line_spacing: float = 1.15
    margin_cm: float = 2.54
    page_width_mm: float = 210
    page_height_mm: float = 297
    page_header_color: str = "666666"
    # twentieths of a point, as Word measures them
    number_column_dxa: int = 700
    option_indent_dxa: int = 400
    option_spacing_after_dxa: int = 60
    question_spacing_after_dxa: int = 100
    essay_space_dxa: int = 1000

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]]) -> "Typography":
        export = (config or {}).get("export", {}) or {}
        defaults = cls()
        return cls(
            font_family=str(export.get("font_family") or defaults.font_family),
            body_pt=float(export.get("body_font_size", defaults.body_pt)),
            header_pt=float(export.get("header_font_size", defaults.header_pt)),
            line_spacing=float(export.get("line_spacing", defaults.line_spacing)),
            margin_cm=float(export.get("margin_cm", defaults.margin_cm)),
        )

    @property
    def number_column_cm(self) -> float:
        return round(self.number_column_dxa / 567.0, 2)

    @property
    def option_indent_cm(self) -> float:
        return round(self.option_indent_dxa / 567.0, 2)

    @property
    def essay_space_cm(self) -> float:
        return round(self.essay_space_dxa / 567.0, 2)


@dataclass(frozen=True)
class NumberedQuestion:
    number: int
    question: Question

    @property
    def label(self) -> str:
        return f"{self.number}."


@dataclass(frozen=True)
class LayoutSection:
    question_type: QuestionType
    heading: str
    items: tuple[NumberedQuestion, ...]


@dataclass(frozen=True)
class ExamLayout:
    header: ExamHeaderInfo
    kop_lines: tuple[str, ...]
    info_rows: tuple[tuple[str, str, str, str], ...]
    sections: tuple[LayoutSection, ...]
    typography: Typography = field(default_factory=Typography)
    instructions_title: str = INSTRUCTIONS_TITLE
    instructions: tuple[str, ...] = GENERAL_INSTRUCTIONS
    page_header: str = CONFIDENTIAL_NOTICE

    @property
    def question_count(self) -> int:
        return sum(len(section.items) for section in self.sections)


def kop_lines_for(header: ExamHeaderInfo) -> tuple[str, ...]:
    return (
        header.school_name.upper(),
        header.exam_type.upper(),
        f"TAHUN PELAJARAN {header.academic_year}",
    )


def info_rows_for(header: ExamHeaderInfo) -> tuple[tuple[str, str, str, str], ...]:
    return (
        ("Mata Pelajaran", f": {header.subject}", "Hari/Tanggal", DATE_PLACEHOLDER),
        ("Kelas/Semester", f": {header.grade}", "Waktu", f": {header.time_allocated}"),
    )


def group_sections(questions: list[Question] | tuple[Question, ...]) -> tuple[LayoutSection, ...]:
    sections: list[LayoutSection] = []
    for question_type in SECTION_ORDER:
        members = [question for question in questions if question.type is question_type]
        if not members:
            continue
        items = tuple(
            NumberedQuestion(number=index, question=question)
            for index, question in enumerate(members, start=1)
        )
        sections.append(
            LayoutSection(
                question_type=question_type,
                heading=SECTION_HEADINGS[question_type],
                items=items,
            )
        )
    return tuple(sections)


def build_layout(exam_data: ExamData, typography: Optional[Typography] = None) -> ExamLayout:
    header = exam_data.header
    return ExamLayout(
        header=header,
        kop_lines=kop_lines_for(header),
        info_rows=info_rows_for(header),
        sections=group_sections(exam_data.questions),
        typography=typography or Typography(),
    )


def export_filename(subject: str) -> str:
    return f"Soal_{re.sub(r'[^a-zA-Z0-9]', '_', subject or '')}.docx"
