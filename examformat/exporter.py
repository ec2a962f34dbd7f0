from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.table import WD_CELL_VERTICAL_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm, Mm, Pt, RGBColor, Twips

from .debug_log import append_log
from .exceptions import ExportError
from .layout import (
    INFO_COLUMN_WIDTHS_PCT,
    ExamLayout,
    LayoutSection,
    NumberedQuestion,
    Typography,
    build_layout,
    export_filename,
)
from .models import ExamData


BOLD_STYLE = "BoldText"
HEADER_STYLE = "HeaderStyle"
HEADER_SUB_STYLE = "HeaderSubStyle"

XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

SECTION_SPACE_BEFORE = {0: 200, 1: 400}
BLOCK_GAP_DXA = 200


def _set_run_font(run, family: str, size_pt: Optional[float] = None) -> None:
    run.font.name = family
    run._element.get_or_add_rPr().get_or_add_rFonts().set(qn("w:eastAsia"), family)
    if size_pt is not None:
        run.font.size = Pt(size_pt)


def _xml_safe(text: str) -> str:
    return XML_INVALID_CHARS.sub(" ", text or "")


def _add_text_with_breaks(paragraph, text: str, typography: Typography, bold: Optional[bool] = None):
    lines = _xml_safe(text).split("\n")
    run = None
    for index, line in enumerate(lines):
        run = paragraph.add_run(line)
        _set_run_font(run, typography.font_family, typography.body_pt if bold is None else None)
        if bold is not None:
            run.bold = bold
        if index < len(lines) - 1:
            run.add_break()
    return run


def _set_table_borders(table, bottom: Optional[dict[str, Any]] = None) -> None:
    tbl_pr = table._tbl.tblPr
    existing = tbl_pr.find(qn("w:tblBorders"))
    if existing is not None:
        tbl_pr.remove(existing)
    borders = OxmlElement("w:tblBorders")
    for edge in ("top", "left", "bottom", "right", "insideH", "insideV"):
        element = OxmlElement(f"w:{edge}")
        spec = bottom if (edge == "bottom" and bottom) else {"val": "nil"}
        for key, value in spec.items():
            element.set(qn(f"w:{key}"), str(value))
        borders.append(element)
    tbl_pr.insert_element_before(borders, "w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook")


def _set_table_full_width(table) -> None:
    tbl_pr = table._tbl.tblPr
    tbl_w = tbl_pr.find(qn("w:tblW"))
    if tbl_w is None:
        tbl_w = OxmlElement("w:tblW")
        tbl_pr.append(tbl_w)
    tbl_w.set(qn("w:type"), "pct")
    tbl_w.set(qn("w:w"), "5000")


def _set_cell_right_margin(cell, dxa: int) -> None:
    tc_pr = cell._tc.get_or_add_tcPr()
    margins = OxmlElement("w:tcMar")
    right = OxmlElement("w:right")
    right.set(qn("w:w"), str(dxa))
    right.set(qn("w:type"), "dxa")
    margins.append(right)
    tc_pr.insert_element_before(margins, "w:textDirection", "w:tcFitText", "w:vAlign", "w:hideMark")


def _add_field(paragraph, instruction: str, typography: Typography) -> None:
    begin = paragraph.add_run()
    _set_run_font(begin, typography.font_family)
    fld_begin = OxmlElement("w:fldChar")
    fld_begin.set(qn("w:fldCharType"), "begin")
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = f" {instruction} "
    fld_separate = OxmlElement("w:fldChar")
    fld_separate.set(qn("w:fldCharType"), "separate")
    begin._r.append(fld_begin)
    begin._r.append(instr)
    begin._r.append(fld_separate)

    placeholder = paragraph.add_run("1")
    _set_run_font(placeholder, typography.font_family)

    end = paragraph.add_run()
    fld_end = OxmlElement("w:fldChar")
    fld_end.set(qn("w:fldCharType"), "end")
    end._r.append(fld_end)


class DocxExporter:
    def __init__(self, config: Optional[dict[str, Any]] = None) -> None:
        self.config = config or {}
        self.typography = Typography.from_config(self.config)

    @property
    def _usable_width(self):
        typo = self.typography
        return Mm(typo.page_width_mm) - Cm(typo.margin_cm) * 2

    def _setup_styles(self, document) -> None:
        typo = self.typography
        normal = document.styles["Normal"]
        normal.font.name = typo.font_family
        normal.font.size = Pt(typo.body_pt)
        normal.element.get_or_add_rPr().get_or_add_rFonts().set(qn("w:eastAsia"), typo.font_family)
        normal.paragraph_format.line_spacing = typo.line_spacing
        normal.paragraph_format.space_after = Pt(0)

        for name, size, bold in (
            (BOLD_STYLE, typo.body_pt, True),
            (HEADER_STYLE, typo.header_pt, True),
            (HEADER_SUB_STYLE, typo.body_pt, True),
        ):
            style = document.styles.add_style(name, WD_STYLE_TYPE.PARAGRAPH)
            style.base_style = normal
            style.font.name = typo.font_family
            style.font.size = Pt(size)
            style.font.bold = bold

    def _setup_page(self, document) -> None:
        typo = self.typography
        section = document.sections[0]
        section.orientation = WD_ORIENT.PORTRAIT
        section.page_width = Mm(typo.page_width_mm)
        section.page_height = Mm(typo.page_height_mm)
        margin = Cm(typo.margin_cm)
        section.top_margin = margin
        section.bottom_margin = margin
        section.left_margin = margin
        section.right_margin = margin

    def _write_page_header_footer(self, document, layout: ExamLayout) -> None:
        typo = self.typography
        section = document.sections[0]

        header_paragraph = section.header.paragraphs[0]
        header_paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        run = header_paragraph.add_run(layout.page_header)
        _set_run_font(run, typo.font_family, typo.page_header_pt)
        run.italic = True
        run.font.color.rgb = RGBColor.from_string(typo.page_header_color)

        footer_paragraph = section.footer.paragraphs[0]
        footer_paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _add_field(footer_paragraph, "PAGE", typo)
        separator = footer_paragraph.add_run(" / ")
        _set_run_font(separator, typo.font_family)
        _add_field(footer_paragraph, "NUMPAGES", typo)

    def _write_kop(self, document, layout: ExamLayout) -> None:
        table = document.add_table(rows=1, cols=1)
        table.autofit = False
        _set_table_full_width(table)
        _set_table_borders(table, bottom={"val": "double", "sz": 6, "space": 1, "color": "000000"})
        cell = table.rows[0].cells[0]
        school, exam_type, year_line = layout.kop_lines

        first = cell.paragraphs[0]
        first.style = document.styles[HEADER_STYLE]
        first.alignment = WD_ALIGN_PARAGRAPH.CENTER
        first.paragraph_format.space_after = Twips(100)
        _add_text_with_breaks(first, school, self.typography, bold=True)

        for text, space_after in ((exam_type, 0), (year_line, 200)):
            paragraph = cell.add_paragraph(_xml_safe(text), style=document.styles[HEADER_SUB_STYLE])
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            paragraph.paragraph_format.space_after = Twips(space_after)

    def _write_info_table(self, document, layout: ExamLayout) -> None:
        table = document.add_table(rows=len(layout.info_rows), cols=len(INFO_COLUMN_WIDTHS_PCT))
        table.autofit = False
        _set_table_full_width(table)
        _set_table_borders(table)
        usable = self._usable_width
        for row, values in zip(table.rows, layout.info_rows):
            for cell, value, pct in zip(row.cells, values, INFO_COLUMN_WIDTHS_PCT):
                cell.width = int(usable * pct / 100)
                _add_text_with_breaks(cell.paragraphs[0], value, self.typography)

    def _write_instructions(self, document, layout: ExamLayout) -> None:
        document.add_paragraph(layout.instructions_title, style=document.styles[BOLD_STYLE])
        for line in layout.instructions:
            document.add_paragraph(line)

    def _gap(self, document, dxa: int = BLOCK_GAP_DXA) -> None:
        document.add_paragraph().paragraph_format.space_after = Twips(dxa)

    def _write_question_row(self, row, item: NumberedQuestion) -> None:
        typo = self.typography
        number_cell, content_cell = row.cells
        number_cell.width = Twips(typo.number_column_dxa)
        content_cell.width = self._usable_width - Twips(typo.number_column_dxa)
        number_cell.vertical_alignment = WD_CELL_VERTICAL_ALIGNMENT.TOP
        content_cell.vertical_alignment = WD_CELL_VERTICAL_ALIGNMENT.TOP
        _set_cell_right_margin(number_cell, 100)

        number_paragraph = number_cell.paragraphs[0]
        number_paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        _add_text_with_breaks(number_paragraph, item.label, typo)

        question = item.question
        body = content_cell.paragraphs[0]
        body.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        body.paragraph_format.space_after = Twips(typo.question_spacing_after_dxa)
        _add_text_with_breaks(body, question.text, typo)

        if question.is_multiple_choice:
            for option in question.options:
                paragraph = content_cell.add_paragraph()
                paragraph.paragraph_format.left_indent = Twips(typo.option_indent_dxa)
                paragraph.paragraph_format.space_after = Twips(typo.option_spacing_after_dxa)
                _add_text_with_breaks(paragraph, f"{option.label}. ", typo)
                _add_text_with_breaks(paragraph, option.text, typo)
        else:
            content_cell.add_paragraph().paragraph_format.space_after = Twips(typo.essay_space_dxa)

    def _write_section(self, document, section: LayoutSection, position: int) -> None:
        heading = document.add_paragraph(section.heading, style=document.styles[BOLD_STYLE])
        heading.paragraph_format.space_before = Twips(SECTION_SPACE_BEFORE.get(position, 400))
        heading.paragraph_format.space_after = Twips(100)

        table = document.add_table(rows=len(section.items), cols=2)
        table.autofit = False
        _set_table_full_width(table)
        _set_table_borders(table)
        for row, item in zip(table.rows, section.items):
            self._write_question_row(row, item)

    def build_document(self, exam_data: ExamData):
        layout = build_layout(exam_data, self.typography)
        document = Document()
        self._setup_styles(document)
        self._setup_page(document)
        self._write_page_header_footer(document, layout)

        self._write_kop(document, layout)
        self._gap(document)
        self._write_info_table(document, layout)
        self._gap(document)
        self._write_instructions(document, layout)
        self._gap(document)
        for position, section in enumerate(layout.sections):
            self._write_section(document, section, position)
        return document

    def output_path_for(self, exam_data: ExamData, output_dir: str | Path | None = None) -> Path:
        target_dir = Path(
            output_dir or self.config.get("paths", {}).get("output_directory") or "output"
        ).expanduser()
        return target_dir / export_filename(exam_data.header.subject)

    def export(self, exam_data: ExamData, output_dir: str | Path | None = None) -> Path:
        path = self.output_path_for(exam_data, output_dir)
        try:
            document = self.build_document(exam_data)
            path.parent.mkdir(parents=True, exist_ok=True)
            document.save(str(path))
        except (OSError, ValueError) as exc:
            append_log(f"export failed | path={path} | {type(exc).__name__}: {exc}")
            raise ExportError(f"Gagal menyimpan dokumen: {exc}") from exc
        append_log(f"export ok | path={path} | questions={len(exam_data.questions)}")
        return path
