#!/usr/bin/env python3
"""
Unit tests for schedule document parsing and date windows.
"""

import os
import sys
import tempfile
import unittest
from datetime import date

# Add the project directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from training_manager.config import ConfigurationError
from training_manager.schedule import (
    TimeRange,
    TrainingConfig,
    parse_config,
    parse_date,
    read_config,
    today,
)
from training_manager.types import Email, GroupName

VALID_SCHEDULE = """
[groups]
team_a = ["alice@example.com", "bob@example.com"]
team_b = ["charlie@example.com"]

[schedule]
team_a = [
    { from = "2023-01-01", to = "2023-06-30" },
    { from = "2023-07-01", to = "2023-12-31" }
]
team_b = [
    { from = "2023-01-01", to = "2023-12-31" }
]
"""


class TestTimeRange(unittest.TestCase):
    """TimeRange.contains is inclusive at both ends."""

    def setUp(self):
        self.year = TimeRange(date(2023, 1, 1), date(2023, 12, 31))

    def test_contains_endpoints(self):
        self.assertTrue(self.year.contains(date(2023, 1, 1)))
        self.assertTrue(self.year.contains(date(2023, 12, 31)))

    def test_contains_inside(self):
        self.assertTrue(self.year.contains(date(2023, 6, 15)))

    def test_outside(self):
        self.assertFalse(self.year.contains(date(2022, 12, 31)))
        self.assertFalse(self.year.contains(date(2024, 1, 1)))

    def test_reversed_range_contains_nothing(self):
        reversed_range = TimeRange(date(2023, 12, 31), date(2023, 1, 1))
        for day in (date(2023, 1, 1), date(2023, 6, 15), date(2023, 12, 31)):
            self.assertFalse(reversed_range.contains(day))

    def test_single_day_range(self):
        day = TimeRange(date(2023, 3, 1), date(2023, 3, 1))
        self.assertTrue(day.contains(date(2023, 3, 1)))
        self.assertFalse(day.contains(date(2023, 3, 2)))

    def test_str(self):
        self.assertEqual(str(self.year), "2023-01-01..2023-12-31")


class TestParseDate(unittest.TestCase):

    def test_iso_string(self):
        self.assertEqual(parse_date("2023-02-28"), date(2023, 2, 28))

    def test_native_date(self):
        self.assertEqual(parse_date(date(2023, 2, 28)), date(2023, 2, 28))

    def test_invalid_strings(self):
        for value in ("invalid_date", "2023-02-30", "28/02/2023", ""):
            with self.assertRaises(ConfigurationError):
                parse_date(value)

    def test_non_string(self):
        with self.assertRaises(ConfigurationError):
            parse_date(20230101)

    def test_today_is_a_date(self):
        self.assertEqual(today(), date.today())


class TestParseConfig(unittest.TestCase):
    """Schedule document parsing."""

    def test_valid_document(self):
        config = parse_config(VALID_SCHEDULE)
        self.assertIsInstance(config, TrainingConfig)
        self.assertEqual(len(config.groups), 2)
        self.assertEqual(len(config.schedule), 2)
        self.assertEqual(config.groups[GroupName("team_a")],
                         [Email("alice@example.com"), Email("bob@example.com")])
        self.assertEqual(len(config.schedule[GroupName("team_a")]), 2)
        self.assertEqual(config.schedule[GroupName("team_b")],
                         [TimeRange(date(2023, 1, 1), date(2023, 12, 31))])

    def test_group_order_is_preserved(self):
        config = parse_config(VALID_SCHEDULE)
        self.assertEqual(list(config.groups), [GroupName("team_a"), GroupName("team_b")])

    def test_native_toml_dates(self):
        config = parse_config("""
[groups]
team_a = ["alice@example.com"]

[schedule]
team_a = [{ from = 2023-01-01, to = 2023-06-30 }]
""")
        self.assertEqual(config.schedule[GroupName("team_a")],
                         [TimeRange(date(2023, 1, 1), date(2023, 6, 30))])

    def test_toml_datetime_rejected(self):
        with self.assertRaises(ConfigurationError):
            parse_config("""
[groups]
team_a = []

[schedule]
team_a = [{ from = 2023-01-01T08:00:00, to = 2023-06-30 }]
""")

    def test_empty_lists_allowed(self):
        config = parse_config("[groups]\nteam_a = []\n\n[schedule]\nteam_a = []\n")
        self.assertEqual(config.groups[GroupName("team_a")], [])
        self.assertEqual(config.schedule[GroupName("team_a")], [])

    def test_invalid_email(self):
        with self.assertRaises(ConfigurationError) as ctx:
            parse_config("""
[groups]
team_a = ["invalid_email"]

[schedule]
team_a = [{ from = "2023-01-01", to = "2023-12-31" }]
""")
        self.assertIn("team_a", str(ctx.exception))

    def test_invalid_date(self):
        with self.assertRaises(ConfigurationError):
            parse_config("""
[groups]
team_a = ["alice@example.com"]

[schedule]
team_a = [{ from = "invalid_date", to = "2023-12-31" }]
""")

    def test_missing_schedule_table(self):
        with self.assertRaises(ConfigurationError) as ctx:
            parse_config('[groups]\nteam_a = ["alice@example.com"]\n')
        self.assertIn("schedule", str(ctx.exception))

    def test_missing_groups_table(self):
        with self.assertRaises(ConfigurationError):
            parse_config('[schedule]\nteam_a = []\n')

    def test_groups_not_a_table(self):
        with self.assertRaises(ConfigurationError):
            parse_config('groups = 1\n\n[schedule]\n')

    def test_members_not_an_array(self):
        with self.assertRaises(ConfigurationError):
            parse_config('[groups]\nteam_a = "alice@example.com"\n\n[schedule]\nteam_a = []\n')

    def test_non_string_member(self):
        with self.assertRaises(ConfigurationError):
            parse_config('[groups]\nteam_a = [1]\n\n[schedule]\nteam_a = []\n')

    def test_window_missing_to(self):
        with self.assertRaises(ConfigurationError):
            parse_config('[groups]\nteam_a = []\n\n[schedule]\nteam_a = [{ from = "2023-01-01" }]\n')

    def test_window_not_a_table(self):
        with self.assertRaises(ConfigurationError):
            parse_config('[groups]\nteam_a = []\n\n[schedule]\nteam_a = ["2023-01-01"]\n')

    def test_invalid_toml(self):
        with self.assertRaises(ConfigurationError):
            parse_config('[groups\nteam_a = [')


class TestReadConfig(unittest.TestCase):

    def test_read_from_file(self):
        with tempfile.NamedTemporaryFile('w', suffix='.toml', delete=False) as f:
            f.write(VALID_SCHEDULE)
            path = f.name
        try:
            config = read_config(path)
            self.assertTrue(config.groups)
            self.assertTrue(config.schedule)
        finally:
            os.unlink(path)

    def test_not_found(self):
        with self.assertRaises(ConfigurationError):
            read_config("not_found.toml")

    def test_example_schedule_parses(self):
        example = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                               'schedule.example.toml')
        config = read_config(example)
        self.assertEqual(set(config.groups), set(config.schedule))


if __name__ == '__main__':
    unittest.main()
