"""Tests for option matching and value formatting."""

import unittest

from easy_apply_agent.tools.data_formatter import DataFormatter, clean_label, extract_number, normalize_label
from easy_apply_agent.tools.field_classifier import default_keyword_tables
from easy_apply_agent.tools.option_matcher import OptionMatcher, is_placeholder_option


class TestOptionMatcher(unittest.TestCase):
    """Test the OptionMatcher strategies."""

    def setUp(self):
        self.matcher = OptionMatcher()
        self.keywords = default_keyword_tables()

    def test_exact_ignores_case_and_spacing(self):
        self.assertEqual(self.matcher.exact("  united   STATES ", ["India", "United States"]), 1)
        self.assertIsNone(self.matcher.exact("", ["India"]))

    def test_partial_checks_both_directions(self):
        options = ["Yes, I am authorized", "No"]
        self.assertEqual(self.matcher.partial("yes", options), 0)
        self.assertEqual(self.matcher.partial("No thanks", ["Maybe", "No"]), 1)

    def test_fuzzy_respects_threshold(self):
        self.assertEqual(self.matcher.fuzzy("Bachelors degree", ["High school", "Bachelor's Degree"]), 1)
        self.assertIsNone(self.matcher.fuzzy("Kubernetes", ["Apple", "Banana"]))

    def test_numeric_at_least_picks_covering_range(self):
        options = ["0-1 years", "2-4 years", "5-7 years", "8+ years"]
        self.assertEqual(self.matcher.numeric_at_least("3", options), 1)
        self.assertEqual(self.matcher.numeric_at_least("6 years", options), 2)
        self.assertEqual(self.matcher.numeric_at_least("20", options), 3)
        self.assertIsNone(self.matcher.numeric_at_least("many", options))

    def test_language_ladder_prefers_highest_rung(self):
        options = ["None", "Basic", "Conversational", "Fluent", "Native or bilingual"]
        self.assertEqual(self.matcher.ladder(options, self.keywords.language_ladder), 4)

    def test_ladder_matches_whole_words(self):
        options = ["Upper intermediate", "Intermediate", "Beginner"]
        self.assertEqual(self.matcher.ladder(options, ["intermediate"]), 1)

    def test_affirmative_and_middle(self):
        self.assertEqual(self.matcher.affirmative(["No", "Yes"], self.keywords.affirmative), 1)
        self.assertEqual(self.matcher.affirmative(["Decline", "I agree to the terms"], self.keywords.affirmative), 1)
        self.assertIsNone(self.matcher.affirmative(["Red", "Blue"], self.keywords.affirmative))
        self.assertEqual(self.matcher.middle(["1", "2", "3", "4", "5"]), 2)
        self.assertIsNone(self.matcher.middle([]))

    def test_answer_to_option_reads_index_or_text(self):
        options = ["Remote", "Hybrid", "On-site"]
        self.assertEqual(self.matcher.answer_to_option("2. Hybrid", options), 1)
        self.assertEqual(self.matcher.answer_to_option("I would prefer on-site work", options), 2)
        self.assertIsNone(self.matcher.answer_to_option("no idea", options))

    def test_answer_to_option_needs_whole_words(self):
        self.assertIsNone(self.matcher.answer_to_option("I don't know", ["Yes", "No"]))
        self.assertEqual(self.matcher.answer_to_option("No, I do not", ["Yes", "No"]), 1)

    def test_placeholder_detection(self):
        self.assertTrue(is_placeholder_option("Select an option"))
        self.assertTrue(is_placeholder_option("Anything", value=""))
        self.assertTrue(is_placeholder_option("India", disabled=True))
        self.assertFalse(is_placeholder_option("India", value="IN"))


class TestDataFormatter(unittest.TestCase):
    """Test label cleanup and value formatting."""

    def setUp(self):
        self.formatter = DataFormatter(default_keyword_tables().country_aliases)

    def test_clean_label_drops_duplicates_and_asterisk(self):
        self.assertEqual(clean_label("Email Email"), "Email")
        self.assertEqual(clean_label("  First   name * "), "First name")
        self.assertEqual(clean_label("CityCity"), "City")
        self.assertEqual(clean_label(None), "")

    def test_normalize_and_extract(self):
        self.assertEqual(normalize_label("  Hello\n World "), "hello world")
        self.assertEqual(extract_number("about 12 years, maybe 13"), "12")
        self.assertIsNone(extract_number("none"))

    def test_format_phone_follows_placeholder(self):
        result = self.formatter.format_phone("+1 (415) 555-0100", placeholder="(XXX) XXX-XXXX")
        self.assertTrue(result.is_valid)
        self.assertEqual(result.formatted_value, "(415) 555-0100")

        dashed = self.formatter.format_phone("4155550100", placeholder="XXX-XXX-XXXX")
        self.assertEqual(dashed.formatted_value, "415-555-0100")

        short = self.formatter.format_phone("4155550100", max_length=8)
        self.assertEqual(short.formatted_value, "41555501")

    def test_format_text_truncates(self):
        result = self.formatter.format_text("  abcdef  ", max_length=3)
        self.assertEqual(result.formatted_value, "abc")
        self.assertFalse(self.formatter.format_text(12).is_valid)

    def test_canonical_country_uses_aliases(self):
        self.assertEqual(self.formatter.canonical_country("USA"), "united states")
        self.assertEqual(self.formatter.canonical_country("Bharat"), "india")
        self.assertEqual(self.formatter.canonical_country("United States of America (+1)"), "united states")
        self.assertIsNone(self.formatter.canonical_country("Atlantis"))
        self.assertEqual(self.formatter.format_country("uk").formatted_value, "United Kingdom")


if __name__ == "__main__":
    unittest.main()
