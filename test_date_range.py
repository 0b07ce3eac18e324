# test_date_range.py

import unittest
from datetime import date, datetime, timezone

from date_range import day_key, expand, is_day_key


class DateRangeTestCase(unittest.TestCase):
    """Tests for day-key derivation and range expansion."""

    def test_expand_is_order_independent(self):
        """Dragging backwards yields the same ascending range as dragging forwards."""
        forward = expand('2025-03-10', '2025-03-13')
        self.assertEqual(forward, ['2025-03-10', '2025-03-11', '2025-03-12', '2025-03-13'])
        self.assertEqual(expand('2025-03-13', '2025-03-10'), forward)

    def test_single_day(self):
        self.assertEqual(expand('2025-03-10', '2025-03-10'), ['2025-03-10'])
        self.assertEqual(day_key('0001-01-01'), '0001-01-01')

    def test_crosses_month_and_leap_day(self):
        days = expand(date(2024, 3, 1), date(2024, 2, 27))
        self.assertEqual(days, ['2024-02-27', '2024-02-28', '2024-02-29', '2024-03-01'])
        self.assertEqual(len(days), len(set(days)))

    def test_timestamps_normalized_in_scheduler_timezone(self):
        """A late-evening UTC timestamp belongs to the previous day in New York."""
        stamp = datetime(2025, 3, 11, 2, 0, tzinfo=timezone.utc)
        self.assertEqual(day_key(stamp), '2025-03-11')
        self.assertEqual(day_key(stamp, 'America/New_York'), '2025-03-10')
        self.assertEqual(day_key('2025-03-11T02:00:00Z', 'America/New_York'), '2025-03-10')
        self.assertEqual(expand('2025-03-11T02:00:00Z', '2025-03-10', 'America/New_York'), ['2025-03-10'])
        # Naive timestamps are taken as wall-clock time
        self.assertEqual(day_key(datetime(2025, 3, 11, 2, 0), 'America/New_York'), '2025-03-11')

    def test_malformed_input(self):
        with self.assertRaises(ValueError): expand('2025-02-30', '2025-03-01')
        with self.assertRaises(ValueError): day_key(None)
        self.assertTrue(is_day_key('2025-03-10'))
        self.assertFalse(is_day_key('2025-3-10'))
        self.assertFalse(is_day_key('tomorrow'))


if __name__ == '__main__':
    unittest.main()
