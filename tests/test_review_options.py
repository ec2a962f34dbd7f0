import unittest

from examformat.models import Option
from gui.preview_window import parse_option_lines


class ReviewOptionLinesTestCase(unittest.TestCase):
    def test_one_option_per_line(self) -> None:
        self.assertEqual(
            parse_option_lines("A. Jakarta\nb) Bandung\n\n"),
            [Option("A", "Jakarta"), Option("B", "Bandung")],
        )

    def test_wrapped_and_repeated_lines_join_previous_option(self) -> None:
        self.assertEqual(
            parse_option_lines("A. Matahari terbit\ndari timur\nA. lagi"),
            [Option("A", "Matahari terbit dari timur A. lagi")],
        )

    def test_empty_text_means_essay(self) -> None:
        self.assertEqual(parse_option_lines("  \n"), [])

    def test_leading_non_option_line_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_option_lines("Jakarta\nB. Bandung")


if __name__ == "__main__":
    unittest.main()
