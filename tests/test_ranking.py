from __future__ import annotations

import unittest

from envscope.resolve import ResolvedValue
from envscope.retrieval import fuzzy_match, rank


def rv(key: str, value: str = "") -> ResolvedValue:
    return ResolvedValue(key=key, value=value, scope="/p")


class FuzzyMatchTests(unittest.TestCase):
    def test_subsequence_positions(self) -> None:
        m = fuzzy_match("dbh", "DB_HOST")
        self.assertIsNotNone(m)
        self.assertEqual(m.positions, [0, 1, 3])

    def test_case_insensitive(self) -> None:
        self.assertIsNotNone(fuzzy_match("API", "api_key"))
        self.assertIsNotNone(fuzzy_match("api", "API_KEY"))

    def test_not_a_subsequence(self) -> None:
        self.assertIsNone(fuzzy_match("xyz", "DB_HOST"))
        self.assertIsNone(fuzzy_match("tsoh", "DB_HOST"))

    def test_empty_pattern(self) -> None:
        self.assertEqual(fuzzy_match("", "anything").positions, [])

    def test_prefix_beats_scattered(self) -> None:
        tight = fuzzy_match("db", "DB_HOST")
        loose = fuzzy_match("db", "DEBUG_BUILD")
        self.assertGreater(tight.score, loose.score)

    def test_separator_bonus(self) -> None:
        after_sep = fuzzy_match("h", "DB_HOST")
        mid_word = fuzzy_match("h", "DBXHOST")
        self.assertGreater(after_sep.score, mid_word.score)


class RankTests(unittest.TestCase):
    def setUp(self) -> None:
        self.values = [
            rv("PORT", "8080"),
            rv("DB_HOST", "localhost"),
            rv("API_KEY", "secret"),
            rv("DEBUG_BUILD", "1"),
        ]

    def test_empty_query_keeps_everything_in_key_order(self) -> None:
        results = rank(self.values, "")
        self.assertEqual([r.value.key for r in results], ["API_KEY", "DB_HOST", "DEBUG_BUILD", "PORT"])
        self.assertTrue(all(r.score == 0 for r in results))

    def test_non_matches_are_dropped(self) -> None:
        keys = [r.value.key for r in rank(self.values, "db")]
        self.assertEqual(keys, ["DB_HOST", "DEBUG_BUILD"])

    def test_value_text_matches(self) -> None:
        results = rank(self.values, "localh")
        self.assertEqual([r.value.key for r in results], ["DB_HOST"])
        self.assertEqual(results[0].key_matches, [])
        self.assertEqual(results[0].value_matches, [0, 1, 2, 3, 4, 5])

    def test_ties_break_by_key(self) -> None:
        values = [rv("B_X"), rv("A_X")]
        self.assertEqual([r.value.key for r in rank(values, "x")], ["A_X", "B_X"])


if __name__ == "__main__":
    unittest.main()
