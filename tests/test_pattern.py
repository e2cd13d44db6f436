from __future__ import annotations

import unittest

from workset.errors import PatternError
from workset.pattern import RepoPattern


class RepoPatternParseTests(unittest.TestCase):
    def test_parse_with_provider(self) -> None:
        pattern = RepoPattern.parse("github.com/acme/widgets")
        self.assertEqual(pattern.provider, "github.com")
        self.assertEqual(pattern.path, "acme/widgets")

    def test_parse_without_provider(self) -> None:
        pattern = RepoPattern.parse("acme/widgets")
        self.assertIsNone(pattern.provider)
        self.assertEqual(pattern.path, "acme/widgets")

    def test_parse_simple_name(self) -> None:
        pattern = RepoPattern.parse("widgets")
        self.assertIsNone(pattern.provider)
        self.assertEqual(pattern.path, "widgets")

    def test_parse_custom_gitlab_host(self) -> None:
        pattern = RepoPattern.parse("gitlab.example.com/group/sub/project")
        self.assertEqual(pattern.provider, "gitlab.example.com")
        self.assertEqual(pattern.path, "group/sub/project")

    def test_domain_alone_is_a_path(self) -> None:
        pattern = RepoPattern.parse("github.com")
        self.assertIsNone(pattern.provider)
        self.assertEqual(pattern.path, "github.com")

    def test_strips_dot_slash_and_trailing_slash(self) -> None:
        pattern = RepoPattern.parse("./github.com/acme/widgets/")
        self.assertEqual(pattern.full_path(), "github.com/acme/widgets")

    def test_empty_pattern_raises(self) -> None:
        for text in ("", "   ", "/", "./"):
            with self.subTest(text=text):
                with self.assertRaises(PatternError):
                    RepoPattern.parse(text)


class RepoPatternAccessorTests(unittest.TestCase):
    def test_provider_and_path(self) -> None:
        self.assertEqual(
            RepoPattern.parse("github.com/acme/widgets").provider_and_path(),
            ("github.com", "acme/widgets"),
        )
        self.assertIsNone(RepoPattern.parse("acme/widgets").provider_and_path())

    def test_full_path_and_str(self) -> None:
        pattern = RepoPattern.parse("github.com/acme/widgets")
        self.assertEqual(pattern.full_path(), "github.com/acme/widgets")
        self.assertEqual(str(pattern), "github.com/acme/widgets")
        self.assertEqual(RepoPattern.parse("acme/widgets").full_path(), "acme/widgets")

    def test_matches_exact_suffix_and_contains(self) -> None:
        pattern = RepoPattern.parse("acme/widgets")
        self.assertTrue(pattern.matches("acme/widgets"))
        self.assertTrue(pattern.matches("github.com/acme/widgets"))
        self.assertTrue(pattern.matches("github.com/acme/widgets-legacy"))
        self.assertFalse(pattern.matches("github.com/other/gadgets"))

    def test_matches_with_provider_requires_path(self) -> None:
        pattern = RepoPattern.parse("github.com/acme/widgets")
        self.assertTrue(pattern.matches("github.com/acme/widgets"))
        self.assertTrue(pattern.matches("gitlab.com/acme/widgets"))
        self.assertFalse(pattern.matches("gitlab.com/acme/gadgets"))


if __name__ == "__main__":
    unittest.main()
