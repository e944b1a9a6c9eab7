"""Unit tests for the per-language phrase catalog."""

import unittest
import tempfile
import shutil
import json
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from match_event_detection.models.phrases import Language, PhraseSet
from match_event_detection.services.phrase_catalog import (
    FALLBACK_PHRASES, load_phrases, parse_catalog
)


class TestLanguage(unittest.TestCase):
    """Test cases for the Language enum."""

    def test_from_code(self):
        self.assertIs(Language.from_code("tr"), Language.TURKISH)
        self.assertIs(Language.from_code(" EN "), Language.ENGLISH)
        self.assertEqual(Language.GERMAN.display_name, "Deutsch")

    def test_unknown_code(self):
        with self.assertRaises(ValueError):
            Language.from_code("xx")


class TestPhraseCatalog(unittest.TestCase):
    """Test cases for catalog loading."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def write_catalog(self, code, data):
        with open(os.path.join(self.test_dir, f"{code}.json"), "w", encoding="utf-8") as f:
            json.dump(data, f)

    def test_every_language_ships_a_catalog(self):
        for language in Language:
            phrases = load_phrases(language)
            self.assertIsInstance(phrases, PhraseSet)
            self.assertIs(phrases.language, language)
            self.assertTrue(phrases.goal_phrases)
            self.assertTrue(phrases.kickoff_phrases)
            self.assertTrue(phrases.match_end_phrases)

    def test_every_language_has_fallback_phrases(self):
        self.assertEqual(set(FALLBACK_PHRASES), set(Language))

    def test_english_catalog(self):
        phrases = load_phrases("en")
        self.assertIn("GOAL FOR", phrases.goal_phrases)
        self.assertTrue(phrases.contains_kickoff_phrase("kick-off in 5"))
        self.assertTrue(phrases.contains_match_end_phrase("full time"))

    def test_custom_catalog_directory(self):
        self.write_catalog("en", {
            "code": "en",
            "detection": {
                "goal_phrases": ["SCORED"],
                "kickoff_phrases": ["START"],
                "match_end_phrases": ["END", " "]
            }
        })
        phrases = load_phrases("en", catalog_dir=self.test_dir)
        self.assertEqual(phrases.goal_phrases, ("SCORED",))
        self.assertEqual(phrases.match_end_phrases, ("END",))

    def test_missing_catalog_falls_back(self):
        phrases = load_phrases(Language.FRENCH, catalog_dir=self.test_dir)
        self.assertEqual(phrases.goal_phrases, FALLBACK_PHRASES[Language.FRENCH][0])

    def test_malformed_catalog_falls_back(self):
        with open(os.path.join(self.test_dir, "es.json"), "w", encoding="utf-8") as f:
            f.write("{not json")
        phrases = load_phrases("es", catalog_dir=self.test_dir)
        self.assertEqual(phrases.kickoff_phrases, FALLBACK_PHRASES[Language.SPANISH][1])

    def test_parse_catalog_rejects_wrong_code(self):
        data = {"code": "de", "detection": {
            "goal_phrases": [], "kickoff_phrases": [], "match_end_phrases": []}}
        with self.assertRaises(ValueError):
            parse_catalog(data, Language.ENGLISH)

    def test_parse_catalog_rejects_non_string_phrases(self):
        data = {"detection": {
            "goal_phrases": [1], "kickoff_phrases": [], "match_end_phrases": []}}
        with self.assertRaises(ValueError):
            parse_catalog(data, Language.ENGLISH)

    def test_extra_goal_phrases(self):
        phrases = load_phrases("en", extra_goal_phrases=["GOLAZO", "GOAL FOR", ""])
        self.assertEqual(phrases.goal_phrases[-1], "GOLAZO")
        self.assertEqual(phrases.goal_phrases.count("GOAL FOR"), 1)


if __name__ == '__main__':
    unittest.main()
