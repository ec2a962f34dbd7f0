from __future__ import annotations

from html import escape
from typing import Optional

from .layout import INFO_COLUMN_WIDTHS_PCT, ExamLayout, LayoutSection, Typography, build_layout
from .models import ExamData


def _text(value: str) -> str:
    return escape(value or "").replace("\n", "<br/>")


def _cm_to_px(cm: float) -> int:
    return round(cm * 96 / 2.54)


def _page_style(typo: Typography) -> str:
    return (
        f"font-family: '{typo.font_family}', Times, serif; "
        f"font-size: {typo.body_pt:g}pt; line-height: {typo.line_spacing:g}; color: #000000;"
    )


def _render_kop(layout: ExamLayout) -> str:
    typo = layout.typography
    school, exam_type, year_line = layout.kop_lines
    return (
        '<table width="100%" cellspacing="0" cellpadding="0" '
        'style="border-bottom: 3px double #000000; margin-bottom: 4px;">'
        '<tr><td align="center" style="padding-bottom: 6px;">'
        f'<div style="font-size: {typo.header_pt:g}pt; font-weight: bold;">{_text(school)}</div>'
        f'<div style="font-size: {typo.body_pt:g}pt; font-weight: bold;">{_text(exam_type)}</div>'
        f'<div style="font-size: {typo.body_pt:g}pt; font-weight: bold;">{_text(year_line)}</div>'
        "</td></tr></table>"
    )


def _render_info(layout: ExamLayout) -> str:
    rows = []
    for values in layout.info_rows:
        cells = "".join(
            f'<td width="{pct}%" valign="top">{_text(value)}</td>'
            for value, pct in zip(values, INFO_COLUMN_WIDTHS_PCT)
        )
        rows.append(f"<tr>{cells}</tr>")
    return f'<table width="100%" cellspacing="0" cellpadding="0" style="margin: 12px 0;">{"".join(rows)}</table>'


def _render_instructions(layout: ExamLayout) -> str:
    lines = "".join(f"<div>{_text(line)}</div>" for line in layout.instructions)
    return (
        '<div style="margin-bottom: 12px;">'
        f"<b>{_text(layout.instructions_title)}</b>"
        f'<div style="margin-left: 16px;">{lines}</div>'
        "</div>"
    )


def _render_section(section: LayoutSection, typo: Typography) -> str:
    rows = []
    for item in section.items:
        question = item.question
        body = [f'<div style="margin-bottom: 3px;">{_text(question.text)}</div>']
        if question.is_multiple_choice:
            options = "".join(
                f"<div>{_text(option.label)}.&nbsp;&nbsp;{_text(option.text)}</div>"
                for option in question.options
            )
            body.append(f'<div style="margin-left: {typo.option_indent_cm:g}cm;">{options}</div>')
        else:
            body.append(f'<div style="height: {typo.essay_space_cm:g}cm;">&nbsp;</div>')
        rows.append(
            "<tr>"
            f'<td width="{_cm_to_px(typo.number_column_cm)}" align="right" valign="top" '
            f'style="padding-right: 6px;">{item.label}</td>'
            f'<td valign="top" align="justify">{"".join(body)}</td>'
            "</tr>"
        )
    return (
        f'<div style="font-weight: bold; margin: 12px 0 6px 0;">{_text(section.heading)}</div>'
        f'<table width="100%" cellspacing="0" cellpadding="0">{"".join(rows)}</table>'
    )


def render_layout_html(layout: ExamLayout) -> str:
    typo = layout.typography
    parts = [
        f'<div style="{_page_style(typo)}">',
        f'<div align="right" style="font-size: {typo.page_header_pt:g}pt; font-style: italic; '
        f'color: #{typo.page_header_color};">{_text(layout.page_header)}</div>',
        _render_kop(layout),
        _render_info(layout),
        _render_instructions(layout),
    ]
    parts.extend(_render_section(section, typo) for section in layout.sections)
    parts.append("</div>")
    return "".join(parts)


def render_preview_html(exam_data: ExamData, typography: Optional[Typography] = None) -> str:
    return render_layout_html(build_layout(exam_data, typography))
