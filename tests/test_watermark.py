import unittest
from datetime import datetime, timezone
from segment_pipeline.watermark import (
    Watermark,
    extract_watermark,
    format_watermark,
    is_valid_time_token,
    parse_fallback_date,
    parse_watermark_description,
    time_token,
    token_is_after,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestWatermarkFormat(unittest.TestCase):

    def test_format_afternoon(self):
        self.assertEqual(format_watermark(utc(2024, 1, 2, 15, 4, 5)), "January 2, 2024 at 03:04:05 PM")

    def test_format_midnight_and_noon(self):
        self.assertEqual(format_watermark(utc(2024, 9, 30, 0, 0, 0)), "September 30, 2024 at 12:00:00 AM")
        self.assertEqual(format_watermark(utc(2024, 9, 30, 12, 0, 0)), "September 30, 2024 at 12:00:00 PM")

    def test_naive_datetime_is_treated_as_utc(self):
        self.assertEqual(format_watermark(datetime(2024, 1, 2, 9, 0, 0)), "January 2, 2024 at 09:00:00 AM")

    def test_watermark_display(self):
        watermark = Watermark(value=utc(2024, 3, 4, 5, 6, 7))
        self.assertEqual(watermark.display, "March 4, 2024 at 05:06:07 AM")
        self.assertFalse(watermark.is_fallback)


class TestParseWatermarkDescription(unittest.TestCase):

    def test_parses_formatted_description(self):
        parsed = parse_watermark_description("January 2, 2024 at 03:04:05 PM")
        self.assertEqual(parsed, utc(2024, 1, 2, 15, 4, 5))

    def test_format_then_parse_keeps_the_instant(self):
        value = utc(2025, 11, 30, 23, 59, 58)
        self.assertEqual(parse_watermark_description(format_watermark(value)), value)

    def test_garbage_is_none(self):
        self.assertIsNone(parse_watermark_description("Managed by sync job"))

    def test_empty_and_non_string_are_none(self):
        self.assertIsNone(parse_watermark_description(None))
        self.assertIsNone(parse_watermark_description(""))
        self.assertIsNone(parse_watermark_description(42))


class TestExtractWatermark(unittest.TestCase):

    def test_first_parseable_rule_wins(self):
        segment = {
            "rules": [
                {"description": "Managed by sync job"},
                {"description": "January 2, 2024 at 03:04:05 PM"},
                {"description": "February 1, 2024 at 01:00:00 AM"},
            ]
        }
        watermark = extract_watermark(segment, "2024-01-01")

        self.assertEqual(watermark.value, utc(2024, 1, 2, 15, 4, 5))
        self.assertFalse(watermark.is_fallback)

    def test_rules_without_description_are_skipped(self):
        segment = {"rules": [{"clauses": []}, None, {"description": "January 5, 2024 at 10:00:00 AM"}]}
        self.assertEqual(extract_watermark(segment).value, utc(2024, 1, 5, 10, 0, 0))

    def test_no_rules_uses_fallback(self):
        watermark = extract_watermark({"rules": []}, "2024-01-01")

        self.assertTrue(watermark.is_fallback)
        self.assertEqual(watermark.value, utc(2024, 1, 1))

    def test_no_parseable_rule_uses_fallback(self):
        watermark = extract_watermark({"rules": [{"description": "not set"}]}, "2024-09-03")

        self.assertTrue(watermark.is_fallback)
        self.assertEqual(watermark.value, utc(2024, 9, 3))

    def test_missing_rules_key_uses_fallback(self):
        self.assertTrue(extract_watermark({}, "2024-01-01").is_fallback)

    def test_invalid_fallback_date_raises(self):
        with self.assertRaises(ValueError):
            parse_fallback_date("someday")


class TestTimeTokens(unittest.TestCase):

    def test_time_token(self):
        self.assertEqual(time_token(utc(2024, 1, 2, 9, 5, 7)), "0905070000")
        self.assertEqual(time_token(utc(2024, 1, 2, 0, 0, 0)), "0000000000")

    def test_token_is_after_is_strict(self):
        self.assertTrue(token_is_after("1200010000", "1200000000"))
        self.assertFalse(token_is_after("1200000000", "1200000000"))
        self.assertFalse(token_is_after("1159590000", "1200000000"))

    def test_no_lower_bound_accepts_every_token(self):
        self.assertTrue(token_is_after("0000000000", None))

    def test_valid_time_token(self):
        self.assertTrue(is_valid_time_token("1530450000"))
        self.assertFalse(is_valid_time_token("153045"))
        self.assertFalse(is_valid_time_token("15304500ab"))
        self.assertFalse(is_valid_time_token(None))


if __name__ == "__main__":
    unittest.main()
