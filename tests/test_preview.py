import unittest

from examformat.layout import CONFIDENTIAL_NOTICE, SECTION_HEADINGS
from examformat.models import ExamData, ExamHeaderInfo, Option, Question, QuestionType
from examformat.preview import render_preview_html


class PreviewTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.exam = ExamData(
            header=ExamHeaderInfo(subject="Matematika", school_name="SMP A\nKota B"),
            questions=[
                Question(
                    id=4,
                    text="Hasil dari 2 < 3 adalah",
                    options=(Option("A", "benar"), Option("B", "salah")),
                    type=QuestionType.MULTIPLE_CHOICE,
                ),
                Question(id=9, text="Jelaskan teorema Pythagoras!"),
            ],
        )

    def test_preview_contains_header_blocks(self) -> None:
        html = render_preview_html(self.exam)
        self.assertIn(CONFIDENTIAL_NOTICE, html)
        self.assertIn("SMP A<br/>KOTA B", html)
        self.assertIn(": Matematika", html)
        self.assertIn("PETUNJUK UMUM:", html)

    def test_preview_sections_and_numbering(self) -> None:
        html = render_preview_html(self.exam)
        self.assertIn(SECTION_HEADINGS[QuestionType.MULTIPLE_CHOICE], html)
        self.assertIn(SECTION_HEADINGS[QuestionType.ESSAY], html)
        self.assertIn(">1.</td>", html)
        self.assertNotIn(">4.</td>", html)
        self.assertNotIn(">9.</td>", html)
        self.assertIn("A.&nbsp;&nbsp;benar", html)

    def test_preview_escapes_question_text(self) -> None:
        html = render_preview_html(self.exam)
        self.assertIn("2 &lt; 3", html)

    def test_preview_without_essays_has_no_essay_heading(self) -> None:
        self.exam.questions = self.exam.questions[:1]
        html = render_preview_html(self.exam)
        self.assertNotIn(SECTION_HEADINGS[QuestionType.ESSAY], html)


if __name__ == "__main__":
    unittest.main()
