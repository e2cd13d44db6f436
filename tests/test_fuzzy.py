from __future__ import annotations

import unittest

from workset.fuzzy import fuzzy_matches, fuzzy_score


class FuzzyScoreTests(unittest.TestCase):
    def test_subsequence_matches_case_insensitively(self) -> None:
        self.assertTrue(fuzzy_matches("GHwid", "github.com/acme/widgets"))
        self.assertFalse(fuzzy_matches("zz", "github.com/acme/widgets"))

    def test_empty_query_scores_zero(self) -> None:
        self.assertEqual(fuzzy_score("", "anything"), 0)

    def test_spaces_in_query_are_ignored(self) -> None:
        self.assertIsNotNone(fuzzy_score("acme wid", "github.com/acme/widgets"))

    def test_contiguous_segment_match_beats_scattered(self) -> None:
        tight = fuzzy_score("wid", "github.com/acme/widgets")
        loose = fuzzy_score("wid", "github.com/weird/indexed")
        self.assertIsNotNone(loose)
        self.assertGreater(tight, loose)

    def test_order_matters(self) -> None:
        self.assertTrue(fuzzy_matches("acme/w", "github.com/acme/widgets"))
        self.assertFalse(fuzzy_matches("w/acme", "github.com/acme/widgets"))


if __name__ == "__main__":
    unittest.main()
