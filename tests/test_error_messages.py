import unittest

from examformat.error_messages import (
    build_export_error_message,
    build_extraction_status_message,
    build_input_error_message,
    provenance_label,
)
from examformat.models import ExtractionResult, ExtractionSource, Option, Question, QuestionType


def _result(source: ExtractionSource, with_questions: bool = True) -> ExtractionResult:
    questions = ()
    if with_questions:
        questions = (
            Question(id=1, text="Pilih", options=(Option("A", "x"),), type=QuestionType.MULTIPLE_CHOICE),
            Question(id=2, text="Jelaskan"),
        )
    return ExtractionResult(questions=questions, source=source)


class ErrorMessageTestCase(unittest.TestCase):
    def test_remote_success_message(self) -> None:
        message = build_extraction_status_message(_result(ExtractionSource.REMOTE), offline=False)
        self.assertIn("Sukses (AI)", message)
        self.assertIn("Ditemukan 2 soal (Pilihan Ganda: 1, Uraian: 1).", message)
        self.assertNotIn("parser lokal", message)

    def test_fallback_message_mentions_degradation(self) -> None:
        message = build_extraction_status_message(_result(ExtractionSource.LOCAL), offline=False)
        self.assertIn("Selesai (Mode Lokal)", message)
        self.assertIn("Menggunakan parser lokal", message)

    def test_offline_message_does_not_blame_quota(self) -> None:
        message = build_extraction_status_message(_result(ExtractionSource.LOCAL), offline=True)
        self.assertIn("Mode Fallback/Offline", message)
        self.assertNotIn("Limit AI", message)

    def test_empty_result_adds_numbering_hint(self) -> None:
        message = build_extraction_status_message(
            _result(ExtractionSource.LOCAL, with_questions=False), offline=True
        )
        self.assertIn("Ditemukan 0 soal", message)
        self.assertIn("Tidak ada nomor soal", message)

    def test_provenance_labels(self) -> None:
        self.assertEqual(provenance_label(ExtractionSource.REMOTE, offline=False), "AI Enhanced")
        self.assertEqual(provenance_label(ExtractionSource.LOCAL, offline=False), "Fallback Lokal")
        self.assertEqual(provenance_label(ExtractionSource.LOCAL, offline=True), "Mode Offline")

    def test_export_permission_message(self) -> None:
        message = build_export_error_message("[Errno 13] Permission denied: 'Soal_IPA.docx'")
        self.assertIn("sedang dibuka", message)
        self.assertIn("[Detail error]", message)
        self.assertIn("Permission denied", message)

    def test_export_default_message(self) -> None:
        message = build_export_error_message("unknown failure")
        self.assertIn("Gagal membuat file Word.", message)
        self.assertIn("unknown failure", message)

    def test_export_detail_is_trimmed(self) -> None:
        message = build_export_error_message("x" * 2000)
        self.assertIn(" ...", message)
        self.assertLess(len(message), 1000)

    def test_input_decode_message(self) -> None:
        message = build_input_error_message("Gagal decode soal.txt sebagai UTF-8: 'utf-8' codec can't decode")
        self.assertIn("UTF-8", message)
        self.assertIn("[Detail error]", message)

    def test_input_unsupported_suffix_message(self) -> None:
        message = build_input_error_message("Hanya file .txt yang didukung: soal.pdf")
        self.assertIn("soal.pdf", message)
        self.assertIn("paste teks", message)

    def test_input_other_message_is_preserved(self) -> None:
        raw = "Gagal membaca soal.txt: disk error"
        self.assertEqual(build_input_error_message(raw), raw)


if __name__ == "__main__":
    unittest.main()
