import unittest

from examformat.classifier import LineKind, classify_line
from examformat.local_parser import (
    LocalParser,
    ParserPhase,
    ParserState,
    QuestionDraft,
    finalize_draft,
    parse_questions_locally,
    step,
)
from examformat.models import Difficulty, Option, QuestionType


class LocalParserScenarioTestCase(unittest.TestCase):
    def test_inline_options_on_question_line(self) -> None:
        questions = parse_questions_locally("2. Sebutkan ibu kota? a. Jakarta b. Bandung")
        self.assertEqual(len(questions), 1)
        question = questions[0]
        self.assertEqual(question.id, 1)
        self.assertEqual(question.text, "Sebutkan ibu kota?")
        self.assertEqual(question.options, (Option("A", "Jakarta"), Option("B", "Bandung")))
        self.assertIs(question.type, QuestionType.MULTIPLE_CHOICE)

    def test_essay_detection(self) -> None:
        questions = parse_questions_locally("3. Jelaskan proses fotosintesis.")
        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].options, ())
        self.assertIs(questions[0].type, QuestionType.ESSAY)
        self.assertEqual(questions[0].text, "Jelaskan proses fotosintesis.")

    def test_option_lines_after_question(self) -> None:
        questions = parse_questions_locally("4. Apa warna langit?\na. Biru\nb. Merah")
        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].text, "Apa warna langit?")
        self.assertEqual(questions[0].options, (Option("A", "Biru"), Option("B", "Merah")))

    def test_wrapped_option_block_on_continuation_line(self) -> None:
        text = "1. Hewan pemakan tumbuhan disebut\npilih: A. herbivora B. karnivora\nlalu C. omnivora D. insektivora"
        question = parse_questions_locally(text)[0]
        self.assertEqual(question.text, "Hewan pemakan tumbuhan disebut")
        self.assertEqual(
            [option.label for option in question.options],
            ["A", "B", "C", "D"],
        )
        self.assertEqual(question.options[3].text, "insektivora")

    def test_option_start_line_is_taken_whole(self) -> None:
        question = parse_questions_locally("1. Soal\nA. herbivora B. karnivora")[0]
        self.assertEqual(question.options, (Option("A", "herbivora B. karnivora"),))

    def test_continuation_extends_last_option(self) -> None:
        text = "1. Pilih pernyataan yang benar\na. Matahari terbit\ndari timur\nb. Bulan bersinar sendiri"
        question = parse_questions_locally(text)[0]
        self.assertEqual(question.options[0].text, "Matahari terbit dari timur")
        self.assertEqual(question.options[1].text, "Bulan bersinar sendiri")

    def test_continuation_extends_body_before_options(self) -> None:
        text = "1. Bacalah teks berikut.\nIndonesia adalah negara kepulauan.\nApa ibu kotanya?"
        question = parse_questions_locally(text)[0]
        self.assertEqual(
            question.text,
            "Bacalah teks berikut. Indonesia adalah negara kepulauan. Apa ibu kotanya?",
        )
        self.assertIs(question.type, QuestionType.ESSAY)

    def test_ids_are_sequential_regardless_of_printed_numbers(self) -> None:
        text = "5. Soal lima\n9. Soal sembilan\n1. Soal satu"
        self.assertEqual([q.id for q in parse_questions_locally(text)], [1, 2, 3])

    def test_mixed_sections_keep_document_order(self) -> None:
        text = (
            "1. Ibu kota Jawa Barat\na. Bandung\nb. Bogor\n"
            "2. Jelaskan arti gotong royong!\n"
            "3. 2 + 2 = a. 3 b. 4"
        )
        questions = parse_questions_locally(text)
        self.assertEqual(
            [q.type for q in questions],
            [QuestionType.MULTIPLE_CHOICE, QuestionType.ESSAY, QuestionType.MULTIPLE_CHOICE],
        )
        self.assertEqual(questions[2].text, "2 + 2 =")

    def test_lines_before_first_question_are_discarded(self) -> None:
        text = "PENILAIAN AKHIR SEMESTER\na. tanpa soal\n1. Soal pertama"
        questions = parse_questions_locally(text)
        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].text, "Soal pertama")
        self.assertIs(questions[0].type, QuestionType.ESSAY)

    def test_repeated_label_keeps_first_and_appends_text(self) -> None:
        text = "1. Pilih\na. satu\nb. dua\na. ulang"
        question = parse_questions_locally(text)[0]
        self.assertEqual([option.label for option in question.options], ["A", "B"])
        self.assertEqual(question.options[1].text, "dua a. ulang")

    def test_words_containing_option_letters_are_not_split(self) -> None:
        question = parse_questions_locally("1. Kota Jakarta dan Bandung berada di pulau Jawa")[0]
        self.assertIs(question.type, QuestionType.ESSAY)
        self.assertEqual(question.options, ())

    def test_local_questions_default_to_medium_difficulty(self) -> None:
        question = parse_questions_locally("1. Soal")[0]
        self.assertIs(question.difficulty, Difficulty.MEDIUM)
        self.assertIsNone(question.answer_key)


class LocalParserPropertyTestCase(unittest.TestCase):
    def test_empty_input_yields_no_questions(self) -> None:
        self.assertEqual(parse_questions_locally(""), [])
        self.assertEqual(parse_questions_locally("\n\n   \r\n"), [])

    def test_unnumbered_input_yields_no_questions(self) -> None:
        samples = [
            "Bacalah teks berikut dengan saksama.",
            "a. Jakarta\nb. Bandung",
            "Ibu kota Indonesia adalah\nA. Jakarta B. Bandung",
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                self.assertEqual(parse_questions_locally(sample), [])

    def test_option_count_matches_option_lines(self) -> None:
        for count in range(1, 6):
            labels = "ABCDE"[:count]
            lines = ["1. Pertanyaan pertama"] + [f"{label}. jawaban {label}" for label in labels]
            lines += ["2. Pertanyaan kedua"] + [f"{label.lower()}) pilihan" for label in labels]
            with self.subTest(count=count):
                questions = parse_questions_locally("\n".join(lines))
                self.assertEqual(len(questions), 2)
                for question in questions:
                    self.assertIs(question.type, QuestionType.MULTIPLE_CHOICE)
                    self.assertEqual(len(question.options), count)

    def test_type_matches_options(self) -> None:
        text = "1. a\n2. b\nA. x\n3. Soal a. satu\n4. Uraian\nlanjutan"
        for question in parse_questions_locally(text):
            self.assertEqual(
                question.type is QuestionType.MULTIPLE_CHOICE,
                bool(question.options),
            )

    def test_parser_is_deterministic(self) -> None:
        text = "1. Soal A\na. satu b. dua\n2. Soal B\nlanjutan\n3. Jelaskan!"
        self.assertEqual(parse_questions_locally(text), parse_questions_locally(text))

    def test_option_labels_unique_within_question(self) -> None:
        text = "1. Soal\na. x\nA. y\nb. z\nb) w\nc. a. b. c."
        for question in parse_questions_locally(text):
            labels = [option.label for option in question.options]
            self.assertEqual(len(labels), len(set(labels)))


class ParserStepTestCase(unittest.TestCase):
    def test_step_discards_context_less_lines(self) -> None:
        state = ParserState()
        self.assertEqual(step(state, classify_line("lanjutan")), state)
        self.assertEqual(step(state, classify_line("a. opsi")), state)

    def test_step_question_start_moves_to_building(self) -> None:
        state = step(ParserState(), classify_line("1. Soal"))
        self.assertIs(state.phase, ParserPhase.BUILDING_QUESTION)
        self.assertEqual(state.draft.text, "Soal")
        self.assertEqual(state.next_id, 2)
        self.assertEqual(state.finished, ())

    def test_step_closes_previous_question(self) -> None:
        state = step(ParserState(), classify_line("1. Pertama"))
        state = step(state, classify_line("2. Kedua"))
        self.assertEqual(len(state.finished), 1)
        self.assertEqual(state.finished[0].text, "Pertama")
        self.assertEqual(state.draft.id, 2)

    def test_step_leaves_input_state_untouched(self) -> None:
        before = step(ParserState(), classify_line("1. Soal"))
        after = step(before, classify_line("a. opsi"))
        self.assertEqual(before.draft.options, ())
        self.assertEqual(after.draft.options, (Option("A", "opsi"),))

    def test_continuation_kind_is_recognised(self) -> None:
        self.assertIs(classify_line("teks biasa").kind, LineKind.CONTINUATION)

    def test_finalize_draft_runs_inline_extraction(self) -> None:
        draft = QuestionDraft(id=1, text="Berapa? a. satu b. dua")
        question = finalize_draft(draft)
        self.assertEqual(question.text, "Berapa?")
        self.assertEqual(question.options, (Option("A", "satu"), Option("B", "dua")))

    def test_finalize_draft_keeps_existing_options(self) -> None:
        draft = QuestionDraft(id=1, text="Berapa? a. satu", options=(Option("A", "x"),))
        question = finalize_draft(draft)
        self.assertEqual(question.text, "Berapa? a. satu")
        self.assertEqual(question.options, (Option("A", "x"),))


class LocalParserConfigTestCase(unittest.TestCase):
    def test_default_difficulty_from_config(self) -> None:
        parser = LocalParser({"parsing": {"default_difficulty": "Sukar"}})
        self.assertIs(parser.parse("1. Soal")[0].difficulty, Difficulty.HARD)

    def test_null_difficulty_leaves_field_empty(self) -> None:
        parser = LocalParser({"parsing": {"default_difficulty": None}})
        self.assertIsNone(parser.parse("1. Soal")[0].difficulty)

    def test_missing_config_uses_medium(self) -> None:
        self.assertIs(LocalParser().default_difficulty, Difficulty.MEDIUM)


if __name__ == "__main__":
    unittest.main()
